"""
ROM Image Linker
================

This module lays a TranslationUnit out as a Game Boy ROM image and
resolves every label reference.

Layout
------
1. Vector sections (rst_00 .. rst_38, int_vblank .. int_keys) are placed
   in their fixed 8-byte slots. A section that does not fit is an error.
2. The cartridge header is emitted at $0100.
3. The entry section ('main') follows at $0150.
4. Every other section is appended in declaration order, zero-padded to
   the next $100 boundary first when declared with 'align'.

Patching
--------
Instructions referencing labels were encoded with placeholder operands of
the final size, so section sizes are known before any address is. Once
every section is placed the placeholders are overwritten:

    jr label     byte at addr+1  <- target - (addr + 2)    (-128..127)
    others       bytes at addr+1 <- target, little-endian

The global checksum is computed last, once no byte will change again.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from gb_sdk.assembler.encoder import EncodedSection, assemble_instructions
from gb_sdk.assembler.parser import LabelUsage, TranslationUnit
from gb_sdk.cpu import is_relative_branch
from gb_sdk.errors import BranchRangeError, LinkError
from gb_sdk.rom import (
    HEADER_OFFSET,
    SLOT_SIZE,
    VECTOR_SLOTS,
    align_up,
    build_header,
    is_vector_section,
    write_global_checksum,
)

logger = logging.getLogger(__name__)


@dataclass
class LinkResult:
    """
    A linked image and the address of every section.

    Attributes:
        image: The unpadded ROM image, checksum included
        symbols: Section label -> base address
    """
    image: bytes
    symbols: dict[str, int] = field(default_factory=dict)


class Linker:
    """
    Builds a ROM image from a parsed TranslationUnit.

    Usage:
        result = Linker().link(unit)
        rom = result.image
    """

    def __init__(self, entry_label: str = "main", title: Optional[str] = None):
        """
        Initialize the linker.

        Args:
            entry_label: Section placed at $0150
            title: Optional cartridge title for the header
        """
        self._entry_label = entry_label
        self._title = title

    def link(self, unit: TranslationUnit) -> LinkResult:
        """
        Lay out, encode and patch every section.

        Raises:
            LinkError: missing entry section, vector overflow, bad title,
                       or address beyond $FFFF
            BranchRangeError: jr target out of reach
            AssemblerError: any instruction that fails to encode
        """
        if self._entry_label not in unit.sections:
            raise LinkError(
                f"no '{self._entry_label}' section",
                hint=f"declare the entry point with '.{self._entry_label}'",
            )

        image = bytearray(HEADER_OFFSET)
        encoded: dict[str, EncodedSection] = {}
        bases: dict[str, int] = {}

        self._place_vectors(unit, image, encoded, bases)

        image.extend(self._build_header())

        self._place_section(unit, self._entry_label, image, encoded, bases)
        for label in unit.labels:
            if label == self._entry_label or is_vector_section(label):
                continue
            self._place_section(unit, label, image, encoded, bases)

        for usage in unit.label_usages:
            self._patch_usage(unit, usage, image, encoded, bases)

        checksum = write_global_checksum(image)
        logger.debug("image is %d byte(s), global checksum $%04X", len(image), checksum)

        return LinkResult(image=bytes(image), symbols=bases)

    # =========================================================================
    # Placement
    # =========================================================================

    def _build_header(self) -> bytes:
        try:
            return build_header(self._title)
        except ValueError as e:
            raise LinkError(f"invalid cartridge title: {e}") from e

    def _place_vectors(
        self,
        unit: TranslationUnit,
        image: bytearray,
        encoded: dict[str, EncodedSection],
        bases: dict[str, int],
    ) -> None:
        for label, slot in VECTOR_SLOTS.items():
            section = unit.sections.get(label)
            if section is None:
                continue

            assembled = assemble_instructions(section.instructions, section.data)
            if len(assembled) > SLOT_SIZE:
                raise LinkError(
                    f"vector section '{label}' is {len(assembled)} bytes, "
                    f"only {SLOT_SIZE} fit at ${slot:04X}",
                    hint="jump to a regular section from the vector",
                )

            image[slot:slot + len(assembled)] = assembled.code
            encoded[label] = assembled
            bases[label] = slot
            logger.debug("vector '%s' at $%04X (%d bytes)", label, slot, len(assembled))

    def _place_section(
        self,
        unit: TranslationUnit,
        label: str,
        image: bytearray,
        encoded: dict[str, EncodedSection],
        bases: dict[str, int],
    ) -> None:
        section = unit.sections[label]
        assembled = assemble_instructions(section.instructions, section.data)

        # The entry section is pinned to $0150
        if section.align and label != self._entry_label:
            padding = align_up(len(image)) - len(image)
            image.extend(bytes(padding))
            if padding:
                logger.debug("aligned '%s' with %d byte(s) of padding", label, padding)

        bases[label] = len(image)
        encoded[label] = assembled
        image.extend(assembled.code)
        logger.debug("section '%s' at $%04X (%d bytes)", label, bases[label], len(assembled))

    # =========================================================================
    # Patching
    # =========================================================================

    def _patch_usage(
        self,
        unit: TranslationUnit,
        usage: LabelUsage,
        image: bytearray,
        encoded: dict[str, EncodedSection],
        bases: dict[str, int],
    ) -> None:
        instruction = unit.sections[usage.section].instructions[usage.index]
        address = bases[usage.section] + encoded[usage.section].offsets[usage.index]
        target = bases[usage.target]

        if is_relative_branch(instruction.name):
            offset = target - (address + 2)
            if not -128 <= offset <= 127:
                raise BranchRangeError(
                    usage.target, offset,
                    location=instruction.location,
                    source_line=instruction.text,
                )
            image[address + 1] = offset & 0xFF
            logger.debug("patched jr at $%04X -> '%s' (%+d)", address, usage.target, offset)
            return

        if target > 0xFFFF:
            raise LinkError(
                f"label '{usage.target}' at ${target:X} is beyond the 16-bit address space",
                location=instruction.location,
                source_line=instruction.text,
            )
        image[address + 1] = target & 0xFF
        image[address + 2] = (target >> 8) & 0xFF
        logger.debug("patched $%04X -> '%s' ($%04X)", address, usage.target, target)


def link(
    unit: TranslationUnit,
    entry_label: str = "main",
    title: Optional[str] = None,
) -> LinkResult:
    """Convenience wrapper around Linker(...).link(unit)."""
    return Linker(entry_label, title).link(unit)
