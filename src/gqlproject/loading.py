import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

from gqlproject import log

T = TypeVar("T")


class LoadingHandler:
    """Runs the asynchronous loads of a project under a user facing label.

    A load started while another load with the same label is still in flight does not
    run; it waits for the in-flight one and gets its result. A failing load is logged and
    yields None, so the state it was meant to refresh keeps its previous value.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task[Any]] = {}

    @property
    def in_flight(self) -> list[str]:
        return list(self._in_flight)

    async def handle(self, label: str, value: Awaitable[T]) -> T | None:
        task = self._in_flight.get(label)
        if task is not None:
            log.debug(f"{label}: already in progress, waiting for it")
            _discard(value)
        else:
            log.info(f"{label}...")
            task = asyncio.ensure_future(value)
            self._in_flight[label] = task
            task.add_done_callback(lambda _: self._in_flight.pop(label, None))

        try:
            result = await asyncio.shield(task)
        except Exception as error:
            log.error(f"{label}: {error}")
            return None

        log.debug(f"{label}: done")
        return result


def _discard(value: Awaitable[Any]) -> None:
    close = getattr(value, "close", None)
    if callable(close):
        close()
