# p6_ihex.py
#
# Intel HEX input. The record stream is decoded into one contiguous
# memory image, which is then played back either as raw bytes or as
# tape records:
#
#   3A hi lo sum                      origin address
#   3A n  d0 .. dn-1 sum              data blocks, n <= 255
#   3A 00 00                          end
#
# where each sum makes its record add up to 0 modulo 256.

import enum
import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)

DATA_RECORD = 0x00
EOF_RECORD = 0x01
ESA_RECORD = 0x02  # Extended Segment Address
SSA_RECORD = 0x03  # Start Segment Address
ELA_RECORD = 0x04  # Extended Linear Address
SLA_RECORD = 0x05  # Start Linear Address

HEX_DIGITS = "0123456789abcdefABCDEF"
ADDRESS_SPACE = 0x10000  # tape records carry a 16-bit origin
RECORD_MARK = 0x3A
BLOCK_SIZE = 255


class SlurpError(enum.Enum):
    PARSING = "malformed record"
    NON_HEX_CHARACTER = "non-hex character"
    INVALID_CHECKSUM = "checksum error"
    UNKNOWN_RECORD_TYPE = "unknown record type"
    ESA_ADDRESS_NOT_ZERO = "ESA record address is not zero"
    ESA_BYTE_COUNT_NOT_TWO = "ESA record byte count is not 2"
    ESA_DATA_FORMAT_INVALID = "ESA record segment is not a paragraph address"
    SSA_ADDRESS_NOT_ZERO = "SSA record address is not zero"
    SSA_BYTE_COUNT_NOT_FOUR = "SSA record byte count is not 4"
    ELA_ADDRESS_NOT_ZERO = "ELA record address is not zero"
    ELA_BYTE_COUNT_NOT_TWO = "ELA record byte count is not 2"
    SLA_ADDRESS_NOT_ZERO = "SLA record address is not zero"
    SLA_BYTE_COUNT_NOT_FOUR = "SLA record byte count is not 4"
    IMAGE_OUT_OF_RANGE = "data record beyond the 64K address space"


class IntelHexError(ValueError):
    def __init__(self, reason, record=None):
        self.reason = reason
        self.record = record
        if record is None:
            msg = reason.value
        else:
            msg = f"record {record}: {reason.value}"
        super().__init__(msg)


class Record(NamedTuple):
    byte_count: int
    address: int
    record_type: int
    data: bytes
    checksum: int


class State(enum.Enum):
    READ_COLON_OR_LINE_BREAK = enum.auto()
    READ_BYTE_COUNT = enum.auto()
    READ_ADDRESS = enum.auto()
    READ_RECORD_TYPE = enum.auto()
    DISPATCH_RECORD_TYPE = enum.auto()
    VERIFY_ESA_ADDRESS_ZERO = enum.auto()
    VERIFY_ESA_BYTE_COUNT_TWO = enum.auto()
    READ_ESA_DATA = enum.auto()
    VERIFY_ESA_DATA_FORMAT = enum.auto()
    VERIFY_SSA_ADDRESS_ZERO = enum.auto()
    VERIFY_SSA_BYTE_COUNT_FOUR = enum.auto()
    VERIFY_ELA_ADDRESS_ZERO = enum.auto()
    VERIFY_ELA_BYTE_COUNT_TWO = enum.auto()
    VERIFY_SLA_ADDRESS_ZERO = enum.auto()
    VERIFY_SLA_BYTE_COUNT_FOUR = enum.auto()
    READ_DATA = enum.auto()
    READ_CHECKSUM = enum.auto()
    VERIFY_CHECKSUM = enum.auto()
    DONE = enum.auto()


class RecordSlurper:
    """
    Reads Intel HEX records one at a time from an iterable of characters.

    Each state of the machine can fail in exactly one way, noted on its
    handler. Running out of input reads as an empty character, which is
    neither a colon nor a hex digit.
    """

    def __init__(self, chars):
        self._chars = iter(chars)
        self.count = 0  # records read so far
        self._handlers = {
            State.READ_COLON_OR_LINE_BREAK: self._read_colon_or_line_break,
            State.READ_BYTE_COUNT: self._read_byte_count,
            State.READ_ADDRESS: self._read_address,
            State.READ_RECORD_TYPE: self._read_record_type,
            State.DISPATCH_RECORD_TYPE: self._dispatch_record_type,
            State.VERIFY_ESA_ADDRESS_ZERO: self._verify_esa_address_zero,
            State.VERIFY_ESA_BYTE_COUNT_TWO: self._verify_esa_byte_count_two,
            State.READ_ESA_DATA: self._read_esa_data,
            State.VERIFY_ESA_DATA_FORMAT: self._verify_esa_data_format,
            State.VERIFY_SSA_ADDRESS_ZERO: self._verify_ssa_address_zero,
            State.VERIFY_SSA_BYTE_COUNT_FOUR: self._verify_ssa_byte_count_four,
            State.VERIFY_ELA_ADDRESS_ZERO: self._verify_ela_address_zero,
            State.VERIFY_ELA_BYTE_COUNT_TWO: self._verify_ela_byte_count_two,
            State.VERIFY_SLA_ADDRESS_ZERO: self._verify_sla_address_zero,
            State.VERIFY_SLA_BYTE_COUNT_FOUR: self._verify_sla_byte_count_four,
            State.READ_DATA: self._read_data,
            State.READ_CHECKSUM: self._read_checksum,
            State.VERIFY_CHECKSUM: self._verify_checksum,
        }

    def slurp(self):
        """Read the next record, or raise IntelHexError."""
        self.count += 1
        self._checksum = 0
        self._byte_count = 0
        self._address = 0
        self._record_type = 0
        self._data = b""
        self._checksum_read = 0

        state = State.READ_COLON_OR_LINE_BREAK
        while state is not State.DONE:
            state = self._handlers[state]()

        return Record(
            self._byte_count,
            self._address,
            self._record_type,
            self._data,
            self._checksum_read,
        )

    def _fail(self, reason):
        raise IntelHexError(reason, self.count)

    # Two hex digits, added into the running checksum
    def _slurp8(self):
        value = 0
        for _ in range(2):
            c = next(self._chars, "")
            if not c or c not in HEX_DIGITS:
                self._fail(SlurpError.NON_HEX_CHARACTER)
            value = (value << 4) | int(c, 16)
        self._checksum += value
        return value

    def _slurp_bytes(self, nbytes):
        return bytes(self._slurp8() for _ in range(nbytes))

    # PARSING
    def _read_colon_or_line_break(self):
        c = next(self._chars, "")
        if c == ":":
            return State.READ_BYTE_COUNT
        if c in ("\r", "\n"):
            return State.READ_COLON_OR_LINE_BREAK
        self._fail(SlurpError.PARSING)

    # NON_HEX_CHARACTER
    def _read_byte_count(self):
        self._byte_count = self._slurp8()
        return State.READ_ADDRESS

    # NON_HEX_CHARACTER
    def _read_address(self):
        hi = self._slurp8()
        self._address = (hi << 8) | self._slurp8()
        return State.READ_RECORD_TYPE

    # NON_HEX_CHARACTER
    def _read_record_type(self):
        self._record_type = self._slurp8()
        return State.DISPATCH_RECORD_TYPE

    # UNKNOWN_RECORD_TYPE
    def _dispatch_record_type(self):
        rtype = self._record_type
        if rtype in (DATA_RECORD, EOF_RECORD):
            return State.READ_DATA
        if rtype == ESA_RECORD:
            return State.VERIFY_ESA_ADDRESS_ZERO
        if rtype == SSA_RECORD:
            return State.VERIFY_SSA_ADDRESS_ZERO
        if rtype == ELA_RECORD:
            return State.VERIFY_ELA_ADDRESS_ZERO
        if rtype == SLA_RECORD:
            return State.VERIFY_SLA_ADDRESS_ZERO
        self._fail(SlurpError.UNKNOWN_RECORD_TYPE)

    # ESA_ADDRESS_NOT_ZERO
    def _verify_esa_address_zero(self):
        if self._address != 0:
            self._fail(SlurpError.ESA_ADDRESS_NOT_ZERO)
        return State.VERIFY_ESA_BYTE_COUNT_TWO

    # ESA_BYTE_COUNT_NOT_TWO
    def _verify_esa_byte_count_two(self):
        if self._byte_count != 2:
            self._fail(SlurpError.ESA_BYTE_COUNT_NOT_TWO)
        return State.READ_ESA_DATA

    # NON_HEX_CHARACTER
    def _read_esa_data(self):
        self._data = self._slurp_bytes(2)
        return State.VERIFY_ESA_DATA_FORMAT

    # ESA_DATA_FORMAT_INVALID
    def _verify_esa_data_format(self):
        if self._data[1] & 0x0F:
            self._fail(SlurpError.ESA_DATA_FORMAT_INVALID)
        return State.READ_CHECKSUM

    # SSA_ADDRESS_NOT_ZERO
    def _verify_ssa_address_zero(self):
        if self._address != 0:
            self._fail(SlurpError.SSA_ADDRESS_NOT_ZERO)
        return State.VERIFY_SSA_BYTE_COUNT_FOUR

    # SSA_BYTE_COUNT_NOT_FOUR
    def _verify_ssa_byte_count_four(self):
        if self._byte_count != 4:
            self._fail(SlurpError.SSA_BYTE_COUNT_NOT_FOUR)
        return State.READ_DATA

    # ELA_ADDRESS_NOT_ZERO
    def _verify_ela_address_zero(self):
        if self._address != 0:
            self._fail(SlurpError.ELA_ADDRESS_NOT_ZERO)
        return State.VERIFY_ELA_BYTE_COUNT_TWO

    # ELA_BYTE_COUNT_NOT_TWO
    def _verify_ela_byte_count_two(self):
        if self._byte_count != 2:
            self._fail(SlurpError.ELA_BYTE_COUNT_NOT_TWO)
        return State.READ_DATA

    # SLA_ADDRESS_NOT_ZERO
    def _verify_sla_address_zero(self):
        if self._address != 0:
            self._fail(SlurpError.SLA_ADDRESS_NOT_ZERO)
        return State.VERIFY_SLA_BYTE_COUNT_FOUR

    # SLA_BYTE_COUNT_NOT_FOUR
    def _verify_sla_byte_count_four(self):
        if self._byte_count != 4:
            self._fail(SlurpError.SLA_BYTE_COUNT_NOT_FOUR)
        return State.READ_DATA

    # NON_HEX_CHARACTER
    def _read_data(self):
        self._data = self._slurp_bytes(self._byte_count)
        return State.READ_CHECKSUM

    # NON_HEX_CHARACTER
    def _read_checksum(self):
        self._checksum_read = self._slurp8()
        return State.VERIFY_CHECKSUM

    # INVALID_CHECKSUM
    def _verify_checksum(self):
        if self._checksum & 0xFF:
            self._fail(SlurpError.INVALID_CHECKSUM)
        return State.DONE


class HexImage:
    """
    A contiguous memory image. The origin is the lowest address stored;
    records may come in any order and gaps read back as zero.
    """

    def __init__(self):
        self.start = None
        self.data = bytearray()

    @property
    def origin(self):
        return 0 if self.start is None else self.start

    def __len__(self):
        return len(self.data)

    def store(self, address, payload, record=None):
        if not payload:
            return
        if self.start is None:
            self.start = address
        if address + len(payload) > ADDRESS_SPACE:
            raise IntelHexError(SlurpError.IMAGE_OUT_OF_RANGE, record)
        if address < self.start:
            self.data[0:0] = bytes(self.start - address)
            self.start = address
        offset = address - self.start
        end = offset + len(payload)
        if end > len(self.data):
            self.data.extend(bytes(end - len(self.data)))
        self.data[offset:end] = payload

    def iter_raw(self):
        return iter(self.data)

    def iter_records(self):
        hi = (self.origin >> 8) & 0xFF
        lo = self.origin & 0xFF
        yield from (RECORD_MARK, hi, lo, (0x100 - (hi + lo)) & 0xFF)

        # An empty image still gets one (empty) block
        for pos in range(0, max(len(self.data), 1), BLOCK_SIZE):
            block = self.data[pos : pos + BLOCK_SIZE]
            yield RECORD_MARK
            yield len(block)
            yield from block
            yield (0x100 - (len(block) + sum(block))) & 0xFF

        yield from (RECORD_MARK, 0x00, 0x00)


def load_intel_hex(chars):
    """
    Decode an Intel HEX record stream (any iterable of characters) up to
    its EOF record into a HexImage. Any bad record raises IntelHexError.
    """
    slurper = RecordSlurper(chars)
    image = HexImage()
    base = 0
    while True:
        record = slurper.slurp()
        if record.record_type == DATA_RECORD:
            image.store(base + record.address, record.data, slurper.count)
        elif record.record_type == ESA_RECORD:
            base = ((record.data[0] << 8) | record.data[1]) << 4
        elif record.record_type == ELA_RECORD:
            base = ((record.data[0] << 8) | record.data[1]) << 16
        elif record.record_type == EOF_RECORD:
            break

    logger.info("Start: %04x Size: %d", image.origin, len(image))
    return image


def read_intel_hex(f):
    # Byte streams are read as latin-1 so that every byte is one character
    text = f.read()
    if isinstance(text, bytes):
        text = text.decode("latin-1")
    return load_intel_hex(text)
