"""
Game Boy ROM Layout
===================

Fixed addresses of a Game Boy cartridge image, as the linker lays it out:

| Range           | Contents                                        |
|-----------------|-------------------------------------------------|
| $0000-$003F     | RST vectors, 8 bytes each                       |
| $0040-$0067     | Interrupt vectors, 8 bytes each                 |
| $0068-$00FF     | Unused (zero)                                   |
| $0100-$014F     | Cartridge header                                |
| $0150-          | Entry section ('main'), then all other sections |

Cartridges are at least 32 KiB: images shorter than that are padded with
zeros before being written out.
"""

from types import MappingProxyType


SLOT_SIZE = 8
HEADER_OFFSET = 0x100
HEADER_SIZE = 0x50
ENTRY_OFFSET = HEADER_OFFSET + HEADER_SIZE      # $0150
CHECKSUM_OFFSET = 0x14E                         # 2 bytes, big-endian
ALIGNMENT = 0x100
MIN_ROM_SIZE = 0x8000

# Section label -> fixed address of its 8-byte slot
VECTOR_SLOTS = MappingProxyType({
    "rst_00": 0x00,
    "rst_08": 0x08,
    "rst_10": 0x10,
    "rst_18": 0x18,
    "rst_20": 0x20,
    "rst_28": 0x28,
    "rst_30": 0x30,
    "rst_38": 0x38,
    "int_vblank": 0x40,
    "int_lcdc": 0x48,
    "int_timer": 0x50,
    "int_serial": 0x58,
    "int_keys": 0x60,
})


def is_vector_section(label: str) -> bool:
    """Return True if the label names one of the fixed vector slots."""
    return label in VECTOR_SLOTS


def align_up(offset: int, alignment: int = ALIGNMENT) -> int:
    """Round offset up to the next multiple of alignment."""
    return (offset + alignment - 1) // alignment * alignment


def pad_image(image: bytes, min_size: int = MIN_ROM_SIZE) -> bytes:
    """
    Zero-pad an image to at least min_size bytes.

    Images already at or above min_size are returned unchanged. Zero
    padding does not change the global checksum.
    """
    if len(image) >= min_size:
        return bytes(image)
    return bytes(image) + bytes(min_size - len(image))
