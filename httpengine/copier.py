"""Copying data from one file-like object to another, optionally a byte range."""

from __future__ import annotations

import os
from typing import IO, Any, Union

DEFAULT_BUFFER_SIZE = 65536

Device = Union[IO[bytes], str, "os.PathLike[str]"]


class CopyError(OSError):
    """Raised when a copy cannot be started or completed."""


def _is_path(device: Any) -> bool:
    return isinstance(device, (str, os.PathLike))


def _is_seekable(device: Any) -> bool:
    seekable = getattr(device, "seekable", None)
    try:
        return bool(seekable()) if seekable else False
    except (OSError, ValueError):
        return False


class DeviceCopier:
    """Copy a source to a destination block by block.

    Paths are opened (and closed afterwards); file objects are used as given.
    A range applies only to seekable sources; streams are copied whole.
    """

    def __init__(self, src: Device, dest: Device, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer size must be positive")
        self.src = src
        self.dest = dest
        self.buffer_size = buffer_size
        self._range_from = 0
        self._range_to = -1
        self._stopped = False

    def set_range(self, start: int, end: int = -1) -> None:
        """Copy only bytes start..end inclusive; an end of -1 means to the end."""
        self._range_from = start
        self._range_to = end

    def stop(self) -> None:
        """Stop copying after the current block."""
        self._stopped = True

    def copy(self) -> int:
        """Run the copy and return the number of bytes written."""
        self._stopped = False
        opened: list[IO[bytes]] = []
        try:
            src = self._open(self.src, "rb", "Unable to open source device for reading", opened)
            dest = self._open(
                self.dest, "wb", "Unable to open destination device for writing", opened
            )
            if _is_seekable(src):
                return self._copy_blocks(src, dest)
            return self._copy_stream(src, dest)
        finally:
            for handle in reversed(opened):
                handle.close()

    @staticmethod
    def _open(device: Device, mode: str, message: str, opened: list[IO[bytes]]) -> IO[bytes]:
        if not _is_path(device):
            return device  # type: ignore[return-value]
        try:
            handle = open(device, mode)  # noqa: SIM115
        except OSError as exc:
            raise CopyError(message) from exc
        opened.append(handle)
        return handle

    @staticmethod
    def _write(dest: IO[bytes], data: bytes) -> None:
        try:
            dest.write(data)
        except (OSError, ValueError) as exc:
            raise CopyError(str(exc)) from exc

    def _read(self, src: IO[bytes], size: int) -> bytes:
        try:
            data = src.read(size)
        except (OSError, ValueError) as exc:
            raise CopyError(str(exc)) from exc
        return data or b""

    def _copy_stream(self, src: IO[bytes], dest: IO[bytes]) -> int:
        total = 0
        while not self._stopped:
            data = self._read(src, self.buffer_size)
            if not data:
                break
            self._write(dest, data)
            total += len(data)
        return total

    def _copy_blocks(self, src: IO[bytes], dest: IO[bytes]) -> int:
        if self._range_from > 0:
            try:
                src.seek(self._range_from)
            except (OSError, ValueError) as exc:
                raise CopyError("Unable to seek source device for specified range") from exc

        total = 0
        while not self._stopped:
            data = self._read(src, self.buffer_size)
            if not data:
                break
            position = src.tell()
            past_end = self._range_to != -1 and position > self._range_to
            if past_end:
                keep = len(data) - (position - self._range_to - 1)
                data = data[: max(keep, 0)]
            if data:
                self._write(dest, data)
                total += len(data)
            if past_end:
                break
        return total