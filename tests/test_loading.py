import asyncio

from gqlproject.loading import LoadingHandler


def test_concurrent_loads_with_the_same_label_run_once() -> None:
    handler = LoadingHandler()
    calls: list[str] = []

    async def load(name: str) -> str:
        calls.append(name)
        await asyncio.sleep(0.01)
        return name

    async def run() -> list[str | None]:
        first = asyncio.ensure_future(handler.handle("Loading schema", load("first")))
        await asyncio.sleep(0)
        assert handler.in_flight == ["Loading schema"]
        second = await handler.handle("Loading schema", load("second"))
        return [await first, second]

    results = asyncio.run(run())

    assert calls == ["first"]
    assert results == ["first", "first"]
    assert handler.in_flight == []


def test_label_is_released_after_completion() -> None:
    handler = LoadingHandler()

    async def load(value: int) -> int:
        return value

    async def run() -> tuple[int | None, int | None]:
        return await handler.handle("load", load(1)), await handler.handle("load", load(2))

    assert asyncio.run(run()) == (1, 2)


def test_failing_load_yields_none() -> None:
    handler = LoadingHandler()

    async def load() -> int:
        raise ConnectionError("service unreachable")

    assert asyncio.run(handler.handle("Loading schema", load())) is None
    assert handler.in_flight == []


def test_different_labels_run_independently() -> None:
    handler = LoadingHandler()
    calls: list[str] = []

    async def load(name: str) -> str:
        calls.append(name)
        await asyncio.sleep(0)
        return name

    async def run() -> list[str | None]:
        return list(await asyncio.gather(handler.handle("a", load("a")), handler.handle("b", load("b"))))

    assert asyncio.run(run()) == ["a", "b"]
    assert sorted(calls) == ["a", "b"]
