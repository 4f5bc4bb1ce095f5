"""
Game Boy SDK - SM83 Assembler and ROM Linker
============================================

This package turns SM83 assembly source into a bootable Game Boy ROM
image: 13 vector slots, the cartridge header, the entry section at $0150
and every other section after it, with all label references resolved and
the global checksum written.

Main Components
---------------
- **assembler**: Parser, instruction encoder, linker and facade (gbasm)
- **cpu**: SM83 mnemonics, register encodings and opcode tables
- **rom**: Cartridge layout, header and checksums

Quick Start
-----------
    >>> from gb_sdk import Assembler
    >>> asm = Assembler()
    >>> asm.assemble_file("game.asm")
    >>> asm.write_binary("game.gb")

Or use the command-line tool:
    $ gbasm game.asm -o game.gb

Reference Documentation
-----------------------
- Pan Docs: https://gbdev.io/pandocs/
"""

__version__ = "1.0.0"

from gb_sdk.assembler import Assembler, assemble, assemble_file
from gb_sdk.config import AssemblerConfig
from gb_sdk.errors import (
    GBError,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    DataFileError,
    UnknownInstructionError,
    OperandCountError,
    AddressingModeError,
    OperandError,
    BranchRangeError,
    LinkError,
)

__all__ = [
    # Version info
    "__version__",
    # Assembler
    "Assembler",
    "AssemblerConfig",
    "assemble",
    "assemble_file",
    # Exception hierarchy
    "GBError",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "DataFileError",
    "UnknownInstructionError",
    "OperandCountError",
    "AddressingModeError",
    "OperandError",
    "BranchRangeError",
    "LinkError",
]
