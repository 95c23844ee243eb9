"""
Encoding and decoding of websocket frames (`RFC 6455`_ section 5.2).

Only the base framing is covered: no extensions, no fragmentation. The
functions in this module are pure, they neither read from nor write to a
socket. Splitting a byte stream into frames is done by the caller with the
help of :func:`frame_size`.

.. _`RFC 6455`: https://datatracker.ietf.org/doc/html/rfc6455.html#section-5.2
"""
import dataclasses
import struct
import sys
from typing import NamedTuple, Optional

from wsrelay.server.ws.exception import FrameDecodeError
from wsrelay.typings import BytesLike


OP_CONT = 0x0
OP_TEXT = 0x1
OP_BINARY = 0x2
OP_CLOSE = 0x8
OP_PING = 0x9
OP_PONG = 0xA

FIN = 0x80
MASK_BIT = 0x80

# Values of the 7-bit length field announcing an extended length.
LENGTH_16 = 126
LENGTH_64 = 127

MAX_LENGTH = 2 ** 63 - 1


@dataclasses.dataclass
class Frame:
    """
    A decoded websocket frame.

    Attributes:
        opcode: The opcode taken from the low 4 bits of the first byte.
        payload: The unmasked payload.
        fin: Whether the FIN bit was set.
        masked: Whether the payload was masked on the wire.
        mask_key: The 4 bytes masking key, present iff ``masked``.
    """

    opcode: int
    payload: bytes
    fin: bool = True
    masked: bool = False
    mask_key: Optional[bytes] = None

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def is_control(self) -> bool:
        return bool(self.opcode & 0x08)

    @property
    def text(self) -> str:
        return self.payload.decode('utf-8')

    def __repr__(self):
        return f"<Frame opcode=0x{self.opcode:x} fin={self.fin} masked={self.masked} length={self.length}>"


class DecodeResult(NamedTuple):
    """
    The outcome of :func:`decode`. Exactly one of the fields is set.
    """
    frame: Optional[Frame]
    error: Optional[FrameDecodeError]

    @property
    def ok(self) -> bool:
        return self.error is None


def apply_mask(data: BytesLike, mask: bytes) -> bytes:
    """
    Mask or unmask ``data`` with the 4 bytes ``mask`` key.

    Byte ``i`` of the payload is XOR-ed with byte ``i % 4`` of the key, so
    applying the same key twice gives back the original data.
    """
    if len(mask) != 4:
        raise ValueError("mask must contain 4 bytes")

    data_int = int.from_bytes(data, sys.byteorder)
    mask_repeated = mask * (len(data) // 4) + mask[: len(data) % 4]
    mask_int = int.from_bytes(mask_repeated, sys.byteorder)
    return (data_int ^ mask_int).to_bytes(len(data), sys.byteorder)


def _header_size(data: BytesLike) -> Optional[int]:
    if len(data) < 2:
        return None
    size = 2
    base_length = data[1] & 0x7F
    if base_length == LENGTH_16:
        size += 2
    elif base_length == LENGTH_64:
        size += 8
    if data[1] & MASK_BIT:
        size += 4
    return size


def _payload_length(data: BytesLike) -> int:
    base_length = data[1] & 0x7F
    if base_length == LENGTH_16:
        return struct.unpack('!H', data[2:4])[0]
    if base_length == LENGTH_64:
        return struct.unpack('!Q', data[2:10])[0]
    return base_length


def frame_size(data: BytesLike) -> Optional[int]:
    """
    Return the total number of bytes of the frame starting at ``data[0]``.

    Returns:
        The header size plus the declared payload length, or :obj:`None` when
        ``data`` doesn't contain the whole header yet.
    """
    header_size = _header_size(data)
    if header_size is None or len(data) < header_size:
        return None
    return header_size + _payload_length(data)


def decode(data: BytesLike) -> DecodeResult:
    """
    Decode one client frame from the beginning of ``data``.

    Client frames must be masked. Bytes following the frame are ignored. The
    payload of data frames must be valid UTF-8; control frames keep their raw
    payload.

    This function never raises. Failures are reported through
    :attr:`DecodeResult.error`.
    """
    if len(data) < 2:
        return DecodeResult(None, FrameDecodeError("IncompleteHeader: incomplete header"))

    first, second = data[0], data[1]
    if not second & MASK_BIT:
        return DecodeResult(None, FrameDecodeError("MissingMask: missing mask"))

    header_size = _header_size(data)
    if len(data) < header_size:
        return DecodeResult(None, FrameDecodeError("TruncatedFrame: truncated frame header"))

    length = _payload_length(data)
    if length > MAX_LENGTH:
        return DecodeResult(None, FrameDecodeError(f"InvalidLength: invalid length {length}"))

    available = len(data) - header_size
    if length > available:
        return DecodeResult(None, FrameDecodeError(
            f"TruncatedFrame: truncated frame, {length} bytes declared but {available} available"))

    mask_key = bytes(data[header_size - 4:header_size])
    payload = apply_mask(data[header_size:header_size + length], mask_key)
    frame = Frame(opcode=first & 0x0F,
                  payload=payload,
                  fin=bool(first & FIN),
                  masked=True,
                  mask_key=mask_key)

    if not frame.is_control:
        try:
            payload.decode('utf-8')
        except UnicodeDecodeError as exc:
            return DecodeResult(None, FrameDecodeError(
                f"InvalidUTF8: invalid UTF-8 at position {exc.start}"))

    return DecodeResult(frame, None)


def _build(opcode: int, payload: bytes, mask_key: Optional[bytes] = None) -> bytes:
    length = len(payload)
    mask_flag = MASK_BIT if mask_key is not None else 0

    if length <= 125:
        header = struct.pack('!BB', FIN | opcode, mask_flag | length)
    elif length <= 65535:
        header = struct.pack('!BBH', FIN | opcode, mask_flag | LENGTH_16, length)
    else:
        header = struct.pack('!BBQ', FIN | opcode, mask_flag | LENGTH_64, length)

    if mask_key is None:
        return header + payload
    return header + mask_key + apply_mask(payload, mask_key)


def encode(text: str) -> bytes:
    """
    Encode ``text`` into a single, final, unmasked text frame.

    Server frames are never masked. The first byte is always ``0x81``.
    """
    return _build(OP_TEXT, text.encode('utf-8'))


def encode_masked(text: str, mask_key: bytes) -> bytes:
    """
    Encode ``text`` the way a client does, masked with ``mask_key``.
    """
    if len(mask_key) != 4:
        raise ValueError("mask must contain 4 bytes")
    return _build(OP_TEXT, text.encode('utf-8'), mask_key)


def encode_control(opcode: int, payload: bytes = b'') -> bytes:
    """
    Encode an unmasked control frame, e.g. a close or a pong.
    """
    if not opcode & 0x08:
        raise ValueError(f"0x{opcode:x} is not a control opcode")
    if len(payload) > 125:
        raise ValueError("control frame payload must not exceed 125 bytes")
    return _build(opcode, payload)
