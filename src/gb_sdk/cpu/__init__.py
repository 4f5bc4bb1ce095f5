"""
Game Boy SDK CPU Package
========================

CPU architecture definitions for the SM83, the processor in the Game Boy.
The tables here are pure constants shared by the operand parsers, the
encoder and the parser's label handling.

Modules:
    sm83: Mnemonics, register/condition encodings and opcode tables.

Usage:
    from gb_sdk.cpu import (
        Mnemonic,
        REGISTERS_8,
        CONDITIONS,
        FIXED_OPCODES,
    )
"""

from gb_sdk.cpu.sm83 import (
    # Core types
    Mnemonic,
    MNEMONICS,
    lookup_mnemonic,
    # Operand encodings
    REGISTERS_8,
    REGISTER_PAIRS,
    STACK_REGISTER_PAIRS,
    INDIRECT_REGISTER_PAIRS,
    CONDITIONS,
    RESERVED_NAMES,
    RST_VECTORS,
    is_reserved_name,
    is_register_pair,
    # Opcode tables
    CB_PREFIX,
    FIXED_OPCODES,
    ALU_OPCODES,
    ACCUMULATOR_ALU,
    CB_SHIFT_OPCODES,
    CB_BIT_OPCODES,
    RELATIVE_BRANCHES,
    is_relative_branch,
)

__all__ = [
    # Core types
    "Mnemonic",
    "MNEMONICS",
    "lookup_mnemonic",
    # Operand encodings
    "REGISTERS_8",
    "REGISTER_PAIRS",
    "STACK_REGISTER_PAIRS",
    "INDIRECT_REGISTER_PAIRS",
    "CONDITIONS",
    "RESERVED_NAMES",
    "RST_VECTORS",
    "is_reserved_name",
    "is_register_pair",
    # Opcode tables
    "CB_PREFIX",
    "FIXED_OPCODES",
    "ALU_OPCODES",
    "ACCUMULATOR_ALU",
    "CB_SHIFT_OPCODES",
    "CB_BIT_OPCODES",
    "RELATIVE_BRANCHES",
    "is_relative_branch",
]
