"""
SM83 Assembler for the Game Boy
===============================

This package assembles SM83 source code and links it into a Game Boy ROM
image with vector table, cartridge header and global checksum.

Main Components
---------------
- **Assembler**: Facade that runs the pipeline and writes output files
- **Parser**: Splits source into sections and records label references
- **encoder**: Encodes one instruction into 1-3 bytes of machine code
- **Linker**: Places sections, patches label references, checksums

Assembly Process
----------------
1. **Parsing**: every line becomes a label, a data block or an
   instruction. Label operands are replaced by fixed-size placeholders.
2. **Encoding**: each section is encoded independently; instruction
   sizes never depend on label values.
3. **Linking**: sections are placed, placeholders are patched with
   addresses or jr displacements, and the checksum is written.

Example Usage
-------------
>>> from gb_sdk.assembler import assemble
>>> rom = assemble('''
... .main
...     ld a, $03
...     di
...     halt
... ''')
>>> rom[0x150:0x155].hex()
'3e03f37600'
"""

from gb_sdk.assembler.assembler import Assembler, assemble, assemble_file
from gb_sdk.assembler.parser import (
    Parser,
    Instruction,
    Section,
    LabelUsage,
    TranslationUnit,
    parse_source,
)
from gb_sdk.assembler.encoder import (
    EncodedSection,
    encode,
    encode_operands,
    assemble_instructions,
)
from gb_sdk.assembler.linker import Linker, LinkResult, link

__all__ = [
    # Facade
    "Assembler",
    "assemble",
    "assemble_file",
    # Parser
    "Parser",
    "Instruction",
    "Section",
    "LabelUsage",
    "TranslationUnit",
    "parse_source",
    # Encoder
    "EncodedSection",
    "encode",
    "encode_operands",
    "assemble_instructions",
    # Linker
    "Linker",
    "LinkResult",
    "link",
]
