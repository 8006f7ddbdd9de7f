# p6_config.py
#
# Encoder parameters for PC-6001 style cassette tapes

"""
Parameters that shape one tape encode: the WAV layout (sampling rate,
quantization, channels) and the tape layout (baud rate, carrier, stop
bits and the segment format string).
"""

from typing import NamedTuple

# Segment format presets. b<sec> blank, h<sec> header tone, d<n> data block
FORMAT_DEFAULT = "b2.0 h3.5 d16 h0.5 d h0.05 b0.6"
FORMAT_IO = "b2.0 h3.5 d17 h0.05 b3.5 h3.5 d h0.05 b0.6"
FORMAT_BIN = "b2.0 h3.5 d h0.05 b0.6"

FORMAT_PRESETS = {
    "default": FORMAT_DEFAULT,
    "io": FORMAT_IO,
    "bin": FORMAT_BIN,
}


class ConfigError(ValueError):
    pass


def resolve_format(name):
    # preset names win over literal format strings
    return FORMAT_PRESETS.get(name, name)


class EncoderConfig(NamedTuple):
    sampling_rate: int = 11025  # Hz
    quantization_bit: int = 8
    channel_count: int = 1
    baud_rate: int = 600
    carrier_low: int = 1200  # Hz, space tone; mark is twice this
    stop_bit_count: int = 3
    format: str = FORMAT_DEFAULT

    @property
    def carrier_high(self):
        return self.carrier_low * 2

    @property
    def bytes_per_sample(self):
        return self.channel_count * self.quantization_bit // 8

    @property
    def byte_rate(self):
        return self.sampling_rate * self.bytes_per_sample

    def validate(self):
        """
        Check the parameters and return self, or raise ConfigError with
        a message fit for the user.
        """
        if self.baud_rate <= 0:
            raise ConfigError("illegal baud rate")
        if self.channel_count not in (1, 2):
            raise ConfigError("the number of channels must be 1 or 2")
        if self.quantization_bit not in (8, 16):
            raise ConfigError("sampling bit must be 8 or 16")
        if self.sampling_rate < 1:
            raise ConfigError("illegal sampling rate")
        if self.stop_bit_count < 0:
            raise ConfigError("illegal stop bit")
        if self.carrier_low < 1 or self.carrier_low % self.baud_rate:
            raise ConfigError("illegal carrier frequency")
        # the mark tone is 2x low, keep at least 4 samples per mark cycle
        if self.sampling_rate < self.carrier_low * 8:
            raise ConfigError("too low sampling rate")
        return self
