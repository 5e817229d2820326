"""Byte ranges as used by the HTTP Range and Content-Range headers."""

from __future__ import annotations

import re

_RANGE_PATTERN = re.compile(r"([0-9]*)-([0-9]*)")
_INT_MAX = 2**31 - 1


class Range:
    """A byte range, optionally bound to the size of the data it covers.

    A negative start means "the last N bytes"; an end of -1 means "up to the
    end of the data"; a data size of -1 means the size is unknown.
    """

    def __init__(self, start: int = 1, end: int = 0, data_size: int = -1) -> None:
        self._from = start
        self._to = -1 if end < 0 else end
        self._data_size = -1 if data_size < 0 else data_size

    @classmethod
    def _raw(cls, start: int, end: int, data_size: int) -> "Range":
        instance = cls.__new__(cls)
        instance._from = start
        instance._to = end
        instance._data_size = data_size
        return instance

    @classmethod
    def parse(cls, text: str, data_size: int = -1) -> "Range":
        """Parse a range such as "10-600", "10-" or "-500".

        Text that cannot be parsed gives an invalid range.
        """
        match = _RANGE_PATTERN.fullmatch(text.strip())
        if match is None:
            return cls()
        from_text, to_text = match.groups()
        if not from_text and not to_text:
            return cls()

        start = int(from_text) if from_text else 0
        end = int(to_text) if to_text else -1
        if start > _INT_MAX or end > _INT_MAX:
            return cls()

        if not from_text:
            start, end = -end, -1
        return cls._raw(start, end, data_size)

    def with_data_size(self, data_size: int) -> "Range":
        """Return the same range bound to another data size."""
        return self._raw(self._from, self._to, data_size)

    @property
    def start(self) -> int:
        """First byte of the range."""
        if self._from < 0 and self._data_size != -1:
            if -self._from >= self._data_size:
                return 0
            return self._data_size + self._from
        if (self._from > self._to and self._to != -1) or (
            self._from >= self._data_size and self._data_size != -1
        ):
            return 0
        return self._from

    @property
    def end(self) -> int:
        """Last byte of the range."""
        if self._from < 0 and self._data_size != -1:
            return self._data_size - 1
        if self._from > 0 and self._to == -1 and self._data_size != -1:
            return self._data_size - 1
        if self._from > self._to and self._to != -1:
            return self._from
        if (self._to >= self._data_size or self._to == -1) and self._data_size != -1:
            return self._data_size - 1
        return self._to

    @property
    def length(self) -> int:
        """Number of bytes in the range, or -1 if invalid or unknown."""
        if not self.is_valid:
            return -1
        if self._from < 0:
            return -self._from
        if self._to >= 0:
            return self._to - self._from + 1
        if self._data_size >= 0:
            return self._data_size - self._from
        return -1

    @property
    def data_size(self) -> int:
        return self._data_size

    @property
    def is_valid(self) -> bool:
        if self._data_size >= 0:
            if self._from < 0:
                return self._data_size + self._from >= 0
            if self._to <= -1:
                return self._from < self._data_size
            return self._from <= self._to < self._data_size
        if self._from < 0 or self._to <= -1:
            return True
        return self._from <= self._to

    @property
    def content_range(self) -> str:
        """Value for a Content-Range header, without the unit."""
        size_text = "*"
        if self._data_size >= 0:
            size_text = str(self._data_size)
            if not self.is_valid:
                return f"*/{size_text}"
        elif not self.is_valid:
            return ""
        return f"{self.start}-{self.end}/{size_text}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return (self._from, self._to, self._data_size) == (
            other._from,
            other._to,
            other._data_size,
        )

    def __repr__(self) -> str:
        return f"Range({self._from}, {self._to}, {self._data_size})"