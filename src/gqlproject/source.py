from dataclasses import dataclass

from graphql import GraphQLError, Node, SourceLocation, get_location


@dataclass(frozen=True)
class Position:
    """A zero based line / character position, as used by editors."""

    line: int
    character: int

    def as_dict(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.as_dict(), "end": self.end.as_dict()}


def position_from_source_location(location: SourceLocation) -> Position:
    return Position(line=location.line - 1, character=location.column - 1)


def range_for_ast_node(node: Node) -> Range:
    """Return the editor range covered by an AST node.

    Nodes parsed without location information collapse to the start of the document.
    """
    loc = node.loc
    if loc is None:
        origin = Position(0, 0)
        return Range(origin, origin)

    start = get_location(loc.source, loc.start)
    end = get_location(loc.source, loc.end)
    return Range(position_from_source_location(start), position_from_source_location(end))


def range_for_error(error: GraphQLError) -> Range | None:
    """Return the range of the first node of an error, or of its first location."""
    if error.nodes:
        return range_for_ast_node(error.nodes[0])
    if error.locations:
        position = position_from_source_location(error.locations[0])
        return Range(position, position)
    return None


def is_node_within(node: Node, container: Node) -> bool:
    """Whether `node` lies inside the text of `container`, in the same parsed source."""
    if node is container:
        return True
    if node.loc is None or container.loc is None:
        return False
    return node.loc.source is container.loc.source and container.loc.start <= node.loc.start < container.loc.end
