# p6_wav.py
#
# RIFF/WAVE container for the encoded samples. The 44-byte header is
# reserved up front and filled in once the data size is known.

import struct

HEADER_SIZE = 44
HEADER_FORMAT = "<4sI4s4sIHHIIHH4sI"
WAVE_FORMAT_PCM = 1


class WavFinalizeError(OSError):
    pass


def make_wav_header(size, config):
    return struct.pack(
        HEADER_FORMAT,
        b"RIFF",
        size + 36,
        b"WAVE",
        b"fmt ",
        16,  # fmt chunk size (always 16 for PCM)
        WAVE_FORMAT_PCM,
        config.channel_count,
        config.sampling_rate,
        config.byte_rate,
        config.bytes_per_sample,  # block alignment
        config.quantization_bit,
        b"data",
        size,
    )


def write_placeholder_header(sink):
    sink.write(bytes(HEADER_SIZE))


def finalize(sink, size, config):
    """
    Seek back to the start of `sink` and overwrite the placeholder with
    the real header for `size` bytes of sample data. Raises
    WavFinalizeError when the sink cannot seek.
    """
    try:
        seekable = sink.seekable()
    except AttributeError:
        seekable = False
    if not seekable:
        raise WavFinalizeError("cannot rewind output to write the WAV header")
    sink.seek(0)
    sink.write(make_wav_header(size, config))
    sink.seek(0, 2)
    sink.flush()
