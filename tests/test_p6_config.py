import pytest

from p6_config import (
    ConfigError,
    EncoderConfig,
    FORMAT_BIN,
    FORMAT_DEFAULT,
    FORMAT_IO,
    resolve_format,
)


def test_defaults_are_valid():
    config = EncoderConfig().validate()
    assert config.sampling_rate == 11025
    assert config.quantization_bit == 8
    assert config.channel_count == 1
    assert config.baud_rate == 600
    assert config.carrier_low == 1200
    assert config.stop_bit_count == 3
    assert config.format == FORMAT_DEFAULT


def test_derived_values():
    config = EncoderConfig(quantization_bit=16, channel_count=2)
    assert config.carrier_high == 2400
    assert config.bytes_per_sample == 4
    assert config.byte_rate == 11025 * 4


@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(baud_rate=0), "illegal baud rate"),
        (dict(baud_rate=-600), "illegal baud rate"),
        (dict(channel_count=3), "the number of channels must be 1 or 2"),
        (dict(channel_count=0), "the number of channels must be 1 or 2"),
        (dict(quantization_bit=24), "sampling bit must be 8 or 16"),
        (dict(sampling_rate=0), "illegal sampling rate"),
        (dict(stop_bit_count=-1), "illegal stop bit"),
        (dict(carrier_low=0), "illegal carrier frequency"),
        (dict(carrier_low=1000), "illegal carrier frequency"),
        (dict(sampling_rate=9599), "too low sampling rate"),
    ],
)
def test_invalid_config_is_rejected(kwargs, message):
    with pytest.raises(ConfigError, match=message):
        EncoderConfig(**kwargs).validate()


def test_sampling_rate_of_exactly_eight_times_carrier():
    EncoderConfig(sampling_rate=9600).validate()


def test_zero_stop_bits_allowed():
    EncoderConfig(stop_bit_count=0).validate()


def test_carrier_multiple_of_baud():
    EncoderConfig(baud_rate=1200, carrier_low=2400, sampling_rate=19200).validate()
    with pytest.raises(ConfigError):
        EncoderConfig(baud_rate=1200, carrier_low=1800, sampling_rate=19200).validate()


def test_resolve_format():
    assert resolve_format("default") == FORMAT_DEFAULT
    assert resolve_format("io") == FORMAT_IO
    assert resolve_format("bin") == FORMAT_BIN
    assert resolve_format("b1 d h0.1") == "b1 d h0.1"


def test_config_is_immutable():
    config = EncoderConfig()
    with pytest.raises(AttributeError):
        config.baud_rate = 1200
