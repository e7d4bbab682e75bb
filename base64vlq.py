"""Signed integers as Base64 VLQ digits, the number format of source maps

A value is stored as a little-endian run of 5-bit groups, one Base64 digit
per group. Digit bit 5 (32) says another digit follows; the lowest group
also carries the sign in its bit 0, leaving it 4 bits of magnitude:

  value    shifted   digits
      0         0    A
      1         2    C
     -1         3    D
     15        30    e
     16        32    gB   (g = 32 | 0, B = 1)
    123       246    2H   (2 = 32 | 22, H = 7)

Decoding stops at the first digit without bit 5; a digit outside
``A-Za-z0-9+/`` or input that ends while bit 5 is still set is an error.

"""

from typing import List, Tuple

_b64chars = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
# indexed by character code; None marks characters outside the alphabet
_b64table = [None] * 128
for _digit, _char in enumerate(_b64chars):
    _b64table[_char] = _digit

_shiftsize, _flag, _mask = 5, 1 << 5, (1 << 5) - 1


class MalformedVLQError(ValueError):
    """A VLQ sequence holds a non-Base64 character or ends mid-value"""

    def __init__(self, vlqval: str, position: int, reason: str):
        super().__init__(f"{reason} at offset {position} in {vlqval!r}")
        self.vlqval = vlqval
        self.position = position


def base64vlq_decode_next(vlqval: str, pos: int = 0) -> Tuple[int, int]:
    """Decode the integer starting at *pos*; return it and the next offset"""
    shiftsize, flag, mask, table = _shiftsize, _flag, _mask, _b64table
    end = len(vlqval)
    shift = value = 0
    while pos < end:
        char = ord(vlqval[pos])
        v = table[char] if char < len(table) else None
        if v is None:
            raise MalformedVLQError(vlqval, pos, "invalid Base64 character")
        pos += 1
        value += (v & mask) << shift
        if v & flag:
            shift += shiftsize
            continue
        # lowest bit is the sign
        return (value >> 1) * (-1 if value & 1 else 1), pos
    raise MalformedVLQError(vlqval, pos, "unterminated VLQ sequence")


def base64vlq_decode(vlqval: str) -> List[int]:
    """Decode Base64 VLQ value"""
    results = []
    add = results.append
    pos, end = 0, len(vlqval)
    while pos < end:
        value, pos = base64vlq_decode_next(vlqval, pos)
        add(value)
    return results


def base64vlq_encode(*values: int) -> str:
    """Encode integers as one run of VLQ digits"""
    digits = bytearray()
    push = digits.append
    shiftsize, flag, mask = _shiftsize, _flag, _mask
    for value in values:
        rest = -value << 1 | 1 if value < 0 else value << 1
        while rest > mask:
            push(_b64chars[rest & mask | flag])
            rest >>= shiftsize
        push(_b64chars[rest])
    return digits.decode("ascii")
