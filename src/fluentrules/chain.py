"""
Contains the PropertyChain which builds the full (dotted and indexed) names of validated properties
"""
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional


class PropertyChain:
    """
    An ordered stack of name segments. Nested properties are joined by a dot, segments starting with a bracket
    (collection indexers) are attached without separator:

        chain = PropertyChain(["order", "lines[2]"])
        chain.build_property_name("amount")  # -> "order.lines[2].amount"
    """

    def __init__(self, segments: Optional[Iterable[str]] = None):
        self._segments: list[str] = [segment for segment in segments or () if segment]

    @classmethod
    def from_property_name(cls, property_name: str) -> "PropertyChain":
        """Creates a chain which has the complete (already joined) `property_name` as root segment"""
        return cls([property_name])

    def push(self, segment: str) -> None:
        """Appends a segment. Empty segments are ignored but still have to be popped."""
        self._segments.append(segment)

    def pop(self) -> str:
        """Removes and returns the last segment"""
        return self._segments.pop()

    def add_indexer(self, indexer: str) -> None:
        """Attaches an indexer (e.g. `[3]`) to the last segment"""
        if not self._segments:
            self._segments.append(indexer)
        else:
            self._segments[-1] += indexer

    @contextmanager
    def nested(self, segment: str) -> Iterator["PropertyChain"]:
        """Pushes `segment` while the block is executed and pops it on any exit"""
        self.push(segment)
        try:
            yield self
        finally:
            self.pop()

    def build_property_name(self, leaf: str) -> str:
        """
        Joins all segments of the chain and the `leaf` following the naming convention.
        No leading separator is emitted if the chain is empty.
        """
        name = ""
        for segment in [*self._segments, leaf]:
            if not segment:
                continue
            if not name or segment.startswith("["):
                name += segment
            else:
                name += f".{segment}"
        return name

    def copy(self) -> "PropertyChain":
        return PropertyChain(self._segments)

    def __len__(self):
        return len(self._segments)

    def __iter__(self):
        return iter(self._segments)

    def __str__(self):
        return self.build_property_name("")

    def __repr__(self):
        return f"PropertyChain({self._segments!r})"
