"""Case-insensitive header names and a multi-valued header map."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Union

BytesLike = Union[bytes, bytearray, str]


def _to_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class IByteArray(bytes):
    """A byte string that compares, hashes and searches case-insensitively."""

    def __new__(cls, value: BytesLike = b"") -> "IByteArray":
        return super().__new__(cls, _to_bytes(value))

    def __repr__(self) -> str:
        return f"IByteArray({bytes(self)!r})"

    @staticmethod
    def _folded(other: object) -> bytes | None:
        if isinstance(other, (bytes, bytearray, str)):
            return _to_bytes(other).lower()
        return None

    def __eq__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() == folded

    def __ne__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() != folded

    def __lt__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() < folded

    def __le__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() <= folded

    def __gt__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() > folded

    def __ge__(self, other: object) -> bool:
        folded = self._folded(other)
        if folded is None:
            return NotImplemented
        return self.lower() >= folded

    def __hash__(self) -> int:
        return hash(self.lower())

    def __contains__(self, item: object) -> bool:
        if isinstance(item, int):
            return bytes([item]).lower() in self.lower()
        folded = self._folded(item)
        if folded is None:
            raise TypeError(f"cannot search for {type(item).__name__}")
        return folded in self.lower()


class HeaderMap:
    """Header names mapped to one or more values, with case-insensitive names.

    The first spelling of a name is kept; values for a name keep the order in
    which they were added.
    """

    def __init__(
        self,
        items: Mapping[BytesLike, BytesLike] | Iterable[tuple[BytesLike, BytesLike]] | None = None,
    ) -> None:
        self._entries: dict[bytes, tuple[IByteArray, list[bytes]]] = {}
        if items is None:
            return
        pairs = items.items() if isinstance(items, Mapping) else items
        for name, value in pairs:
            self.add(name, value)

    @staticmethod
    def _key(name: BytesLike) -> bytes:
        return _to_bytes(name).lower()

    def add(self, name: BytesLike, value: BytesLike) -> None:
        """Add a value for a name, keeping any values already present."""
        key = self._key(name)
        if key in self._entries:
            self._entries[key][1].append(_to_bytes(value))
        else:
            self._entries[key] = (IByteArray(name), [_to_bytes(value)])

    def replace(self, name: BytesLike, value: BytesLike) -> None:
        """Set a single value for a name, dropping any earlier values."""
        key = self._key(name)
        original = self._entries[key][0] if key in self._entries else IByteArray(name)
        self._entries[key] = (original, [_to_bytes(value)])

    def get(self, name: BytesLike, default: bytes | None = None) -> bytes | None:
        """Return the most recently added value for a name."""
        entry = self._entries.get(self._key(name))
        if entry is None:
            return default
        return entry[1][-1]

    def values_for(self, name: BytesLike) -> list[bytes]:
        """Return every value for a name, in the order they were added."""
        entry = self._entries.get(self._key(name))
        return list(entry[1]) if entry else []

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, (bytes, bytearray, str)):
            return False
        return self._key(name) in self._entries

    def __iter__(self) -> Iterator[IByteArray]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        """Number of distinct header names."""
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return {k: v for k, (_, v) in self._entries.items()} == {
            k: v for k, (_, v) in other._entries.items()
        }

    def items(self) -> list[tuple[IByteArray, bytes]]:
        """Return every (name, value) pair."""
        return [(name, value) for name, values in self._entries.values() for value in values]

    def copy(self) -> "HeaderMap":
        clone = HeaderMap()
        clone._entries = {k: (name, list(values)) for k, (name, values) in self._entries.items()}
        return clone

    def __repr__(self) -> str:
        return f"HeaderMap({self.items()!r})"