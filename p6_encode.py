#!/usr/bin/env python3
# p6_encode.py
#
# Requires Python 3.8 or newer

"""
Takes the contents of any file, or the memory image of an Intel HEX
file, and encodes it into a WAV file that, when played, loads the data
through the cassette tape input of a PC-6001 series computer.

The tape is FSK: 0 bits are the low carrier, 1 bits twice that, and
each byte goes out as 1 start bit, 8 data bits (LSB first) and the
configured number of stop bits.
"""

import sys
import logging
import optparse
from contextlib import ExitStack

from p6_config import EncoderConfig, ConfigError, FORMAT_DEFAULT, resolve_format
from p6_format import encode, parse_format
from p6_ihex import IntelHexError, read_intel_hex
from p6_source import generate_raw_bytes
from p6_wav import finalize, write_placeholder_header

logger = logging.getLogger(__name__)

DEFAULTS = EncoderConfig()


# Write a complete WAV tape to a seekable sink. Returns the size of the
# sample data in bytes.
def p6_write_wav(sink, byte_source, config):
    write_placeholder_header(sink)
    size = encode(config.format, byte_source, sink, config)
    finalize(sink, size, config)
    return size


class P6OptionParser(optparse.OptionParser):
    # Bad options exit with status 1, like every other usage error
    def error(self, msg):
        self.print_usage(sys.stderr)
        print(f"{self.get_prog_name()}: error: {msg}", file=sys.stderr)
        raise SystemExit(1)


def make_parser():
    parser = P6OptionParser(usage="%prog [options] input-file output-file")
    parser.add_option(
        "-b",
        "--baud-rate",
        type="int",
        default=DEFAULTS.baud_rate,
        dest="baud_rate",
        help="baud rate [default: %default]",
    )
    parser.add_option(
        "-c",
        "--channels",
        type="int",
        default=DEFAULTS.channel_count,
        dest="channel_count",
        help="number of channels, 1 or 2 [default: %default]",
    )
    parser.add_option(
        "-f",
        "--format",
        default=FORMAT_DEFAULT,
        dest="format",
        help='format string, or "io" or "bin" [default: "%default"]',
    )
    parser.add_option(
        "-q",
        "--quantization",
        type="int",
        default=DEFAULTS.quantization_bit,
        dest="quantization_bit",
        help="bits per sample, 8 or 16 [default: %default]",
    )
    parser.add_option(
        "-r",
        "--sampling-rate",
        type="int",
        default=DEFAULTS.sampling_rate,
        dest="sampling_rate",
        help="sampling rate in Hz [default: %default]",
    )
    parser.add_option(
        "-s",
        "--stop-bits",
        type="int",
        default=DEFAULTS.stop_bit_count,
        dest="stop_bit_count",
        help="number of stop bits [default: %default]",
    )
    parser.add_option(
        "-w",
        "--carrier",
        type="int",
        default=DEFAULTS.carrier_low,
        dest="carrier_low",
        help="lower carrier frequency in Hz [default: %default]",
    )
    parser.add_option(
        "-i",
        "--intel-hex",
        action="store_true",
        default=False,
        dest="intelhex",
        help="input is Intel HEX, played back as tape records",
    )
    parser.add_option(
        "--raw-image",
        action="store_true",
        default=False,
        dest="raw_image",
        help="with -i, play the decoded memory image as plain bytes",
    )
    parser.add_option(
        "--plot",
        dest="plot_file",
        help="save a waveform preview of the output to this image file",
    )
    parser.add_option(
        "--plot-start",
        type="float",
        default=0.0,
        dest="plot_start",
        help="preview start time in seconds [default: %default]",
    )
    parser.add_option(
        "--plot-length",
        type="float",
        dest="plot_length",
        help="preview length in seconds (whole tape if none)",
    )
    parser.add_option(
        "-v",
        "--verbose",
        action="count",
        default=0,
        dest="verbose",
        help="report progress on stderr (twice for debug output)",
    )
    return parser


def main(argv=None):
    parser = make_parser()
    opts, args = parser.parse_args(argv)

    if len(args) != 2:
        parser.print_help(sys.stderr)
        raise SystemExit(1)
    in_filename, out_filename = args

    if opts.raw_image and not opts.intelhex:
        parser.error("--raw-image needs -i")
    if opts.plot_file and out_filename == "-":
        parser.error("--plot needs an output file")

    if opts.verbose > 1:
        level = logging.DEBUG
    elif opts.verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    try:
        config = EncoderConfig(
            sampling_rate=opts.sampling_rate,
            quantization_bit=opts.quantization_bit,
            channel_count=opts.channel_count,
            baud_rate=opts.baud_rate,
            carrier_low=opts.carrier_low,
            stop_bit_count=opts.stop_bit_count,
            format=resolve_format(opts.format),
        ).validate()
        # A bad format string fails here, before the output is opened
        parse_format(config.format)
    except ConfigError as e:
        print(e, file=sys.stderr)
        raise SystemExit(1)

    with ExitStack() as stack:
        # Load and check the input completely before touching the output
        try:
            if in_filename == "-":
                input_f = sys.stdin.buffer
            else:
                input_f = stack.enter_context(open(in_filename, "rb"))
            if opts.intelhex:
                image = read_intel_hex(input_f)
                if opts.raw_image:
                    byte_source = image.iter_raw()
                else:
                    byte_source = image.iter_records()
            else:
                byte_source = generate_raw_bytes(input_f)
        except IntelHexError as e:
            print(f"{in_filename}: {e}", file=sys.stderr)
            raise SystemExit(1)
        except OSError as e:
            print(f"cannot open {in_filename}: {e.strerror}", file=sys.stderr)
            raise SystemExit(1)

        try:
            if out_filename == "-":
                outf = sys.stdout.buffer
            else:
                outf = stack.enter_context(open(out_filename, "wb"))
            if not outf.seekable():
                logger.warning(
                    "%s is not seekable, the WAV header cannot be written",
                    out_filename,
                )
            size = p6_write_wav(outf, byte_source, config)
        except OSError as e:
            print(f"{out_filename}: {e.strerror or e}", file=sys.stderr)
            raise SystemExit(1)

    logger.info(
        "%s: %d bytes of samples, %.2f seconds",
        out_filename,
        size,
        size / config.byte_rate,
    )

    if opts.plot_file:
        from p6_plot import plot_wav

        plot_wav(out_filename, opts.plot_file, opts.plot_start, opts.plot_length)


if __name__ == "__main__":
    main()
