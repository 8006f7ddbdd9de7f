import io

import pytest

from p6_config import EncoderConfig


@pytest.fixture
def config():
    # 600 baud, 1200/2400 Hz carriers, 11025 Hz 8-bit mono, 3 stop bits
    return EncoderConfig(format="d1").validate()


class NonSeekableSink(io.RawIOBase):
    def __init__(self):
        self.data = bytearray()

    def writable(self):
        return True

    def seekable(self):
        return False

    def write(self, b):
        self.data.extend(b)
        return len(b)


@pytest.fixture
def non_seekable_sink():
    return NonSeekableSink()
