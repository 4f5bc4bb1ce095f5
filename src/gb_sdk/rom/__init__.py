"""
Game Boy ROM Image Helpers
==========================

Layout constants, the cartridge header and the global checksum shared by
the linker and the command-line tool.

Modules:
    layout: Vector slots, fixed offsets and image padding.
    header: The $50-byte cartridge header and its checksum.
    checksum: The 16-bit global checksum at $014E.
"""

from gb_sdk.rom.layout import (
    SLOT_SIZE,
    HEADER_OFFSET,
    HEADER_SIZE,
    ENTRY_OFFSET,
    CHECKSUM_OFFSET,
    ALIGNMENT,
    MIN_ROM_SIZE,
    VECTOR_SLOTS,
    is_vector_section,
    align_up,
    pad_image,
)
from gb_sdk.rom.header import (
    build_header,
    calculate_header_checksum,
    encode_title,
)
from gb_sdk.rom.checksum import (
    calculate_global_checksum,
    write_global_checksum,
    verify_global_checksum,
)

__all__ = [
    # Layout
    "SLOT_SIZE",
    "HEADER_OFFSET",
    "HEADER_SIZE",
    "ENTRY_OFFSET",
    "CHECKSUM_OFFSET",
    "ALIGNMENT",
    "MIN_ROM_SIZE",
    "VECTOR_SLOTS",
    "is_vector_section",
    "align_up",
    "pad_image",
    # Header
    "build_header",
    "calculate_header_checksum",
    "encode_title",
    # Checksum
    "calculate_global_checksum",
    "write_global_checksum",
    "verify_global_checksum",
]
