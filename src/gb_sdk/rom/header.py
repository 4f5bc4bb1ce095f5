"""
Cartridge Header
================

The $50-byte block at $0100 that the boot ROM inspects before handing
control to the cartridge.

| Offset | Size | Field                                             |
|--------|------|---------------------------------------------------|
| $00    | 4    | Entry point: nop; jp $0150                        |
| $04    | 48   | Nintendo logo bitmap                              |
| $34    | 16   | Title (upper-case ASCII, zero padded)             |
| $4D    | 1    | Header checksum over $34-$4C                      |
| $4E    | 2    | Global checksum, big-endian (written by the linker) |

Every other field (licensee, cartridge type, ROM/RAM size, region,
version) is left at zero, which describes a plain 32 KiB ROM-only
cartridge.

Header Checksum
---------------
    x = 0
    for each byte b in $0134..$014C:
        x = x - b - 1
Only the low 8 bits are kept. The boot ROM locks up if it does not match.
"""

from typing import Optional

from gb_sdk.rom.layout import HEADER_SIZE


TITLE_OFFSET = 0x34
TITLE_SIZE = 16
HEADER_CHECKSUM_OFFSET = 0x4D

_CHECKSUM_START = 0x34
_CHECKSUM_END = 0x4C

_PREAMBLE = bytes([
    # nop; jp $0150
    0x00, 0xC3, 0x50, 0x01,
    # Nintendo logo
    0xCE, 0xED, 0x66, 0x66, 0xCC, 0x0D, 0x00, 0x0B, 0x03, 0x73, 0x00, 0x83,
    0x00, 0x0C, 0x00, 0x0D, 0x00, 0x08, 0x11, 0x1F, 0x88, 0x89, 0x00, 0x0E,
    0xDC, 0xCC, 0x6E, 0xE6, 0xDD, 0xDD, 0xD9, 0x99, 0xBB, 0xBB, 0x67, 0x63,
    0x6E, 0x0E, 0xEC, 0xCC, 0xDD, 0xDC, 0x99, 0x9F, 0xBB, 0xB9, 0x33, 0x3E,
])


def calculate_header_checksum(header: bytes) -> int:
    """Compute the header checksum of a $50-byte header block."""
    x = 0
    for b in header[_CHECKSUM_START:_CHECKSUM_END + 1]:
        x = (x - b - 1) & 0xFF
    return x


def encode_title(title: str) -> bytes:
    """
    Encode a cartridge title into its 16-byte field.

    Raises:
        ValueError: If the title is not ASCII or is longer than 16 characters
    """
    try:
        raw = title.upper().encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"title '{title}' must be ASCII") from None
    if len(raw) > TITLE_SIZE:
        raise ValueError(f"title '{title}' is longer than {TITLE_SIZE} characters")
    return raw.ljust(TITLE_SIZE, b"\x00")


def build_header(title: Optional[str] = None) -> bytes:
    """
    Build the $50-byte cartridge header.

    Without a title this is the fixed default header (header checksum $E7).
    The global checksum field is left at zero for the linker to fill.
    """
    header = bytearray(HEADER_SIZE)
    header[:len(_PREAMBLE)] = _PREAMBLE
    if title:
        header[TITLE_OFFSET:TITLE_OFFSET + TITLE_SIZE] = encode_title(title)
    header[HEADER_CHECKSUM_OFFSET] = calculate_header_checksum(header)
    return bytes(header)
