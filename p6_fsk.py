# p6_fsk.py
#
# Two-tone FSK synthesis for cassette data. A 0 bit (space) is the low
# carrier, a 1 bit (mark) is twice that frequency. Every burst is phase
# locked to the low carrier cycle grid of one shared playback clock.

import math

import numpy as np

CENTER = 128  # DC level of 8-bit unsigned samples
AMPLITUDE_8 = 127
AMPLITUDE_16 = 32767

BITMASKS = [0x1, 0x2, 0x4, 0x8, 0x10, 0x20, 0x40, 0x80]

BLANK_CHUNK = 8192  # samples of silence written per call


class PlaybackClock:
    """
    Elapsed playback time in seconds. One clock lives for exactly one
    encode; every burst reads it to find its phase origin and advances
    it by the samples it wrote.
    """

    def __init__(self, time=0.0):
        self.time = time

    def cycle_origin(self, carrier_low):
        # Snap back to the last zero crossing of the low carrier
        return int(self.time * carrier_low) / carrier_low

    def __repr__(self):
        return f"PlaybackClock(time={self.time!r})"


# Turn amplitudes in [-1, 1] into PCM bytes, duplicated on every channel
def quantize(amplitudes, config):
    amplitudes = np.atleast_1d(np.asarray(amplitudes, dtype=np.float64))
    if config.quantization_bit == 8:
        samples = np.rint(CENTER - AMPLITUDE_8 * amplitudes).astype("u1")
    else:
        samples = np.rint(-AMPLITUDE_16 * amplitudes).astype("<i2")
    return np.repeat(samples, config.channel_count).tobytes()


def write_samples(amplitudes, config, sink):
    data = quantize(amplitudes, config)
    sink.write(data)
    return len(data)


def emit_burst(frequency, duration, clock, config, sink):
    """
    Write one sine burst of the given frequency, starting at the current
    clock time, until at least `duration` seconds past the burst's phase
    origin have been covered. The phase origin is the clock snapped back
    to the low carrier grid, whichever tone is being played.

    The clock is left one sample period past the last sample written and
    is never rounded; the residual carries into the next burst.
    Returns the number of bytes written.
    """
    origin = clock.cycle_origin(config.carrier_low)
    end = origin + duration
    step = 1.0 / config.sampling_rate

    # Accumulate sample times one step at a time so that the clock keeps
    # the exact same rounding history from burst to burst
    offsets = []
    t = clock.time
    while t < end:
        offsets.append(t - origin)
        t += step
    clock.time = t

    phase = 2 * np.pi * frequency * np.array(offsets, dtype=np.float64)
    return write_samples(np.sin(phase), config, sink)


# Silence: mid-level samples, no tone
def emit_blank(duration, clock, config, sink):
    count = max(0, math.ceil(duration * config.sampling_rate))
    clock.time += count / config.sampling_rate
    size = 0
    remaining = count
    while remaining > 0:
        n = min(remaining, BLANK_CHUNK)
        size += write_samples(np.zeros(n), config, sink)
        remaining -= n
    return size


# Continuous mark tone made of bit-length bursts, at least `duration` long
def emit_header(duration, clock, config, sink):
    origin = clock.cycle_origin(config.carrier_low)
    bit_time = 1.0 / config.baud_rate
    size = 0
    while clock.time < origin + duration:
        size += emit_burst(config.carrier_high, bit_time, clock, config, sink)
    return size


def frame_bits(byteval, stop_bits):
    # The start bit (0), 8 data bits LSB first, then the stop bits (1)
    bits = [0]
    bits.extend(1 if (byteval & mask) else 0 for mask in BITMASKS)
    bits.extend([1] * stop_bits)
    return bits


# Take a single byte value and play it as one asynchronous serial frame
def encode_byte(byteval, clock, config, sink):
    bit_time = 1.0 / config.baud_rate
    tones = (config.carrier_low, config.carrier_high)
    size = 0
    for bit in frame_bits(byteval, config.stop_bit_count):
        size += emit_burst(tones[bit], bit_time, clock, config, sink)
    return size
