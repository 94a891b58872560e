"""Segment-structured event names and a trie for wildcard lookups.

Event names are split on a delimiter (``:`` by default). A subscription
pattern may use two special segments:

- ``*`` matches exactly one segment in that position.
- ``**`` matches one or more consecutive segments.

Matching is structural, never substring based: ``a:*`` matches ``a:b`` but
neither ``a`` nor ``a:b:c``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import InvalidArgumentError


def validate_name(name: Any) -> str:
    """Return ``name`` if it is a non-empty string, else raise."""
    if not isinstance(name, str) or not name:
        raise InvalidArgumentError(f"Missing event name: {name!r}")
    return name


@dataclass(frozen=True)
class PatternSyntax:
    """Tokens used to split and interpret event names."""

    delimiter: str = ":"
    wildcard: str = "*"
    globstar: str = "**"

    def split(self, name: str) -> tuple[str, ...]:
        return tuple(validate_name(name).split(self.delimiter))

    def join(self, *segments: str) -> str:
        return self.delimiter.join(segments)


@dataclass(eq=False)
class Subscription:
    """One registration of a handler on a pattern."""

    pattern: str
    handler: Any
    sequence: int
    once: bool = False
    active: bool = True


@dataclass
class _Node:
    children: dict[str, _Node] = field(default_factory=dict)
    subscriptions: list[Subscription] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.children and not self.subscriptions


class SegmentTrie:
    """Map segment patterns to subscriptions and find matches for names."""

    def __init__(self, syntax: PatternSyntax | None = None) -> None:
        self.syntax = syntax or PatternSyntax()
        self._root = _Node()

    def insert(self, subscription: Subscription) -> None:
        node = self._root
        for segment in self.syntax.split(subscription.pattern):
            node = node.children.setdefault(segment, _Node())
        node.subscriptions.append(subscription)

    def remove(self, pattern: str, handler: Any) -> Subscription | None:
        """Remove the newest subscription of ``handler`` on exactly ``pattern``."""
        located = self._locate(pattern)
        if located is None:
            return None
        path, node = located
        for index in range(len(node.subscriptions) - 1, -1, -1):
            if node.subscriptions[index].handler is handler:
                removed = node.subscriptions.pop(index)
                removed.active = False
                self._prune(path, node)
                return removed
        return None

    def discard(self, subscription: Subscription) -> bool:
        """Remove one specific subscription object."""
        located = self._locate(subscription.pattern)
        if located is None:
            return False
        path, node = located
        for index, candidate in enumerate(node.subscriptions):
            if candidate is subscription:
                del node.subscriptions[index]
                subscription.active = False
                self._prune(path, node)
                return True
        return False

    def remove_pattern(self, pattern: str) -> list[Subscription]:
        """Remove every subscription registered on exactly ``pattern``."""
        located = self._locate(pattern)
        if located is None:
            return []
        path, node = located
        removed = node.subscriptions
        node.subscriptions = []
        for subscription in removed:
            subscription.active = False
        self._prune(path, node)
        return removed

    def clear(self) -> None:
        for subscription in self:
            subscription.active = False
        self._root = _Node()

    def match(self, name: str) -> list[Subscription]:
        """Return subscriptions whose pattern matches ``name``, oldest first."""
        segments = self.syntax.split(name)
        found: dict[int, Subscription] = {}
        self._collect(self._root, segments, 0, found)
        return [found[key] for key in sorted(found)]

    def __iter__(self) -> Iterator[Subscription]:
        stack = [self._root]
        while stack:
            node = stack.pop()
            yield from node.subscriptions
            stack.extend(node.children.values())

    def _collect(
        self,
        node: _Node,
        segments: tuple[str, ...],
        index: int,
        found: dict[int, Subscription],
    ) -> None:
        if index == len(segments):
            for subscription in node.subscriptions:
                found[subscription.sequence] = subscription
            return

        segment = segments[index]
        literal = node.children.get(segment)
        if literal is not None:
            self._collect(literal, segments, index + 1, found)

        wildcard = node.children.get(self.syntax.wildcard)
        if wildcard is not None and wildcard is not literal:
            self._collect(wildcard, segments, index + 1, found)

        globstar = node.children.get(self.syntax.globstar)
        if globstar is not None and globstar is not literal:
            for end in range(index + 1, len(segments) + 1):
                self._collect(globstar, segments, end, found)

    @staticmethod
    def _prune(path: list[tuple[_Node, str]], leaf: _Node) -> None:
        node = leaf
        for parent, segment in reversed(path):
            if not node.is_empty():
                return
            del parent.children[segment]
            node = parent

    def _locate(self, pattern: str) -> tuple[list[tuple[_Node, str]], _Node] | None:
        path: list[tuple[_Node, str]] = []
        node = self._root
        for segment in self.syntax.split(pattern):
            child = node.children.get(segment)
            if child is None:
                return None
            path.append((node, segment))
            node = child
        return path, node
