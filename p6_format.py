# p6_format.py
#
# The segment format mini-language and the tape encode loop.
#
# A format string is scanned for the markers b (blank), h (header tone)
# and d (data block). Everything else is skipped. Examples:
#
#   "b2.0 h3.5 d16 h0.5 d h0.05 b0.6"
#
# is 2s of silence, 3.5s of mark tone, 16 payload bytes, 0.5s of mark
# tone, the rest of the payload, a short tone and a trailing gap.

import re
import math
import logging
from typing import NamedTuple, Optional

from p6_config import ConfigError
from p6_fsk import PlaybackClock, emit_blank, emit_header, encode_byte

logger = logging.getLogger(__name__)

MARKERS = "bhd"

# Numeric prefixes as sscanf("%lf") and sscanf("%d") would read them
FLOAT_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
INT_RE = re.compile(r"\s*([-+]?\d+)")


class Blank(NamedTuple):
    duration: float  # seconds of silence


class Header(NamedTuple):
    duration: float  # minimum seconds of mark tone


class Data(NamedTuple):
    count: Optional[int]  # None: until the byte source runs dry


def parse_format(fmt):
    """
    Tokenize a format string into a list of Blank, Header and Data
    directives, in playback order.

    A b or h marker without a readable number lasts 0 seconds. A d
    marker without a readable count, or with a count of 0, is unbounded.
    A duration too large for a float raises ConfigError.
    """
    directives = []
    for pos, marker in enumerate(fmt):
        if marker not in MARKERS:
            continue
        if marker == "d":
            m = INT_RE.match(fmt, pos + 1)
            count = int(m.group(1)) if m else 0
            directives.append(Data(count or None))
        else:
            m = FLOAT_RE.match(fmt, pos + 1)
            duration = float(m.group(1)) if m else 0.0
            if not math.isfinite(duration):
                raise ConfigError(f"illegal duration in format: {marker}{m.group(1)}")
            if marker == "b":
                directives.append(Blank(duration))
            else:
                directives.append(Header(duration))
    return directives


# Feed up to `count` bytes from the source to the byte framer
def encode_data(count, byte_source, clock, config, sink):
    size = 0
    nbytes = 0
    while count is None or nbytes < count:
        byteval = next(byte_source, None)
        if byteval is None:
            break
        size += encode_byte(byteval, clock, config, sink)
        nbytes += 1
    logger.debug("data block: %d bytes, %d sample bytes", nbytes, size)
    return size


def encode(fmt, byte_source, sink, config):
    """
    Play every directive of `fmt` into `sink` and return the number of
    sample bytes written. `byte_source` is any iterable of byte values;
    a data block that finds it exhausted simply ends early.
    """
    directives = parse_format(fmt) if isinstance(fmt, str) else list(fmt)
    byte_source = iter(byte_source)
    clock = PlaybackClock()
    size = 0
    for directive in directives:
        logger.debug("%r at t=%.6f", directive, clock.time)
        if isinstance(directive, Blank):
            size += emit_blank(directive.duration, clock, config, sink)
        elif isinstance(directive, Header):
            size += emit_header(directive.duration, clock, config, sink)
        elif isinstance(directive, Data):
            size += encode_data(directive.count, byte_source, clock, config, sink)
    return size
