import io

import pytest

from httpengine.copier import CopyError, DeviceCopier

SAMPLE = bytes(range(256)) * 5


class Stream(io.RawIOBase):
    """A readable, non-seekable stream."""

    def __init__(self, data):
        self._inner = io.BytesIO(data)

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        chunk = self._inner.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)


class FailingReader(io.BytesIO):
    def read(self, size=-1):
        raise OSError("read failed")


@pytest.mark.parametrize("buffer_size", [1, 7, 256, 65536])
def test_copy_whole(buffer_size):
    dest = io.BytesIO()
    count = DeviceCopier(io.BytesIO(SAMPLE), dest, buffer_size).copy()
    assert dest.getvalue() == SAMPLE
    assert count == len(SAMPLE)


@pytest.mark.parametrize("buffer_size", [1, 3, 64, 65536])
@pytest.mark.parametrize("start, end", [(10, 20), (0, 0), (100, 999), (300, -1)])
def test_copy_range(buffer_size, start, end):
    dest = io.BytesIO()
    copier = DeviceCopier(io.BytesIO(SAMPLE), dest, buffer_size)
    copier.set_range(start, end)
    copier.copy()
    expected = SAMPLE[start:] if end == -1 else SAMPLE[start : end + 1]
    assert dest.getvalue() == expected


def test_range_ignored_for_streams():
    dest = io.BytesIO()
    copier = DeviceCopier(Stream(SAMPLE), dest, 16)
    copier.set_range(10, 20)
    copier.copy()
    assert dest.getvalue() == SAMPLE


def test_copy_paths(tmp_path):
    src = tmp_path / "in.bin"
    dst = tmp_path / "out.bin"
    src.write_bytes(SAMPLE)
    DeviceCopier(str(src), dst).copy()
    assert dst.read_bytes() == SAMPLE


def test_missing_source_raises(tmp_path):
    with pytest.raises(CopyError, match="Unable to open source device"):
        DeviceCopier(tmp_path / "missing", io.BytesIO()).copy()


def test_unwritable_destination_raises(tmp_path):
    with pytest.raises(CopyError, match="Unable to open destination device"):
        DeviceCopier(io.BytesIO(SAMPLE), tmp_path / "no" / "such" / "dir").copy()


def test_read_error_raises():
    with pytest.raises(CopyError):
        DeviceCopier(FailingReader(SAMPLE), io.BytesIO()).copy()


def test_stop_after_first_block():
    class StoppingDest(io.BytesIO):
        copier = None

        def write(self, data):
            result = super().write(data)
            self.copier.stop()
            return result

    dest = StoppingDest()
    copier = DeviceCopier(io.BytesIO(SAMPLE), dest, 8)
    dest.copier = copier
    copier.copy()
    assert dest.getvalue() == SAMPLE[:8]


def test_invalid_buffer_size():
    with pytest.raises(ValueError):
        DeviceCopier(io.BytesIO(), io.BytesIO(), 0)