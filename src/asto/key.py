"""Hierarchical storage keys.

A key is an ordered sequence of non-empty segments joined by ``/``. A key
whose string form ends with the separator denotes a directory-like scope and
is what ``Storage.list`` expects as its prefix. The empty key is the root
scope.
"""

from __future__ import annotations

from asto.errors import InvalidArgumentError

SEPARATOR = "/"


class Key:
    """Immutable path-like identifier of a stored value.

    Two keys are equal iff their string forms are equal.
    """

    __slots__ = ("_parts", "_dir")

    ROOT: Key

    def __init__(self, *parts: str) -> None:
        joined = SEPARATOR.join(part for part in parts if part)
        segments = joined.split(SEPARATOR) if joined else []
        is_dir = bool(segments) and segments[-1] == ""
        if is_dir:
            segments.pop()
        if any(not segment for segment in segments):
            raise InvalidArgumentError(f"Key contains an empty segment: {joined!r}")
        self._parts: tuple[str, ...] = tuple(segments)
        self._dir = is_dir

    @property
    def parts(self) -> tuple[str, ...]:
        """The key segments, without separators."""
        return self._parts

    @property
    def is_dir(self) -> bool:
        """True if the key denotes a scope (trailing separator)."""
        return self._dir

    @property
    def is_root(self) -> bool:
        return not self._parts

    @property
    def parent(self) -> Key | None:
        """The enclosing scope, or None for the root key."""
        if not self._parts:
            return None
        if len(self._parts) == 1:
            return Key.ROOT
        return Key(SEPARATOR.join(self._parts[:-1]) + SEPARATOR)

    def child(self, *parts: str) -> Key:
        """Return a key nested under this one."""
        return Key(SEPARATOR.join(self._parts), *parts)

    def __truediv__(self, other: str) -> Key:
        return self.child(other)

    def is_prefix_of(self, other: Key) -> bool:
        """Return True if ``other`` lies within the scope of this key."""
        if self.is_root:
            return True
        base = SEPARATOR.join(self._parts) + SEPARATOR
        return str(other).startswith(base)

    def relative_to(self, prefix: Key) -> str:
        """Return the string form of this key with ``prefix`` stripped."""
        if not prefix.is_prefix_of(self):
            raise InvalidArgumentError(f"{prefix} is not a prefix of {self}")
        if prefix.is_root:
            return str(self)
        return str(self)[len(SEPARATOR.join(prefix.parts)) + 1 :]

    def __str__(self) -> str:
        text = SEPARATOR.join(self._parts)
        if self._dir:
            text += SEPARATOR
        return text

    def __repr__(self) -> str:
        return f"Key({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    def __lt__(self, other: Key) -> bool:
        return str(self) < str(other)


Key.ROOT = Key()
