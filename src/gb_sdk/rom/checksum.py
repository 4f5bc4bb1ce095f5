"""
Global Checksum
===============

A 16-bit sum of every byte of the image except the two checksum bytes
themselves, stored big-endian at $014E. The boot ROM does not verify it,
but emulators and flash tools report a mismatch.
"""

from gb_sdk.rom.layout import CHECKSUM_OFFSET


def calculate_global_checksum(image: bytes) -> int:
    """Sum all bytes except $014E-$014F, truncated to 16 bits."""
    total = sum(image) - sum(image[CHECKSUM_OFFSET:CHECKSUM_OFFSET + 2])
    return total & 0xFFFF


def write_global_checksum(image: bytearray) -> int:
    """Compute the global checksum and store it in the image, in place."""
    checksum = calculate_global_checksum(image)
    image[CHECKSUM_OFFSET] = (checksum >> 8) & 0xFF
    image[CHECKSUM_OFFSET + 1] = checksum & 0xFF
    return checksum


def verify_global_checksum(image: bytes) -> bool:
    """Return True if the stored global checksum matches the image."""
    if len(image) < CHECKSUM_OFFSET + 2:
        return False
    stored = (image[CHECKSUM_OFFSET] << 8) | image[CHECKSUM_OFFSET + 1]
    return stored == calculate_global_checksum(image)
