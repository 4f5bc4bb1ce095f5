"""
SM83 Instruction Set Definition
===============================

This module defines the Game Boy SM83 instruction set as the assembler
sees it: mnemonic names, register and condition encodings, and the base
opcodes the encoder ORs operand fields into.

The SM83 is a Sharp derivative of the Intel 8080 / Zilog Z80 with its own
load/store additions (LDH, LDI, LDD, LDHL) and without the Z80's IX/IY
index registers. It is little-endian: 16-bit operands are emitted low byte
first.

Opcode Fields
-------------
SM83 opcodes are regular. Every addressing mode contributes a bit field
that is OR'd into a fixed base byte:

| Field                  | Bits | Values                          |
|------------------------|------|---------------------------------|
| 8-bit register (src)   | 0-2  | b c d e h l (hl) a -> 0..7      |
| 8-bit register (dst)   | 3-5  | same, shifted left by 3         |
| Register pair          | 4-5  | bc de hl sp (or af) -> 0..3     |
| Condition              | 3-4  | nz z nc c -> 0..3               |
| Bit index              | 3-5  | 0..7                            |

Example: LD D, E -> 0x40 | (2 << 3) | 3 = 0x53

The $CB Page
------------
Rotates, shifts and single-bit operations live in a second opcode page
reached through the $CB prefix byte: RLC B -> $CB $00, BIT 7, H -> $CB $7C.

Reference
---------
- Pan Docs: https://gbdev.io/pandocs/CPU_Instruction_Set.html
"""

from enum import Enum
from types import MappingProxyType


# =============================================================================
# Mnemonics
# =============================================================================

class Mnemonic(Enum):
    """
    Every instruction name the assembler accepts.

    The encoder keeps a dispatch table keyed by this enum; a missing entry
    is caught by the test suite rather than at assembly time.
    """
    # Loads
    LD = "ld"
    LDI = "ldi"
    LDD = "ldd"
    LDH = "ldh"
    LDHL = "ldhl"

    # 8/16-bit arithmetic and logic
    INC = "inc"
    DEC = "dec"
    ADD = "add"
    ADC = "adc"
    SUB = "sub"
    SBC = "sbc"
    AND = "and"
    XOR = "xor"
    OR = "or"
    CP = "cp"

    # Accumulator rotates
    RLCA = "rlca"
    RLA = "rla"
    RRCA = "rrca"
    RRA = "rra"

    # Control flow
    JR = "jr"
    JP = "jp"
    CALL = "call"
    RET = "ret"
    RETI = "reti"
    RST = "rst"

    # Stack
    PUSH = "push"
    POP = "pop"

    # Miscellaneous
    DAA = "daa"
    CPL = "cpl"
    SCF = "scf"
    CCF = "ccf"
    DI = "di"
    EI = "ei"
    HALT = "halt"
    STOP = "stop"
    NOP = "nop"

    # $CB page: rotates and shifts
    RLC = "rlc"
    RL = "rl"
    RRC = "rrc"
    RR = "rr"
    SLA = "sla"
    SRA = "sra"
    SWAP = "swap"
    SRL = "srl"

    # $CB page: single-bit operations
    BIT = "bit"
    RES = "res"
    SET = "set"

    def __str__(self) -> str:
        return self.value


MNEMONICS: frozenset[str] = frozenset(m.value for m in Mnemonic)


def lookup_mnemonic(name: str) -> Mnemonic | None:
    """Return the Mnemonic for a lowercase name, or None if unknown."""
    try:
        return Mnemonic(name)
    except ValueError:
        return None


# =============================================================================
# Register, Pair and Condition Encodings
# =============================================================================
# Values are the unshifted field numbers; the operand parsers shift them
# into place.

REGISTERS_8 = MappingProxyType({
    "b": 0,
    "c": 1,
    "d": 2,
    "e": 3,
    "h": 4,
    "l": 5,
    "(hl)": 6,
    "a": 7,
})

# Pairs used by 16-bit loads and arithmetic (LD rr,nn / ADD HL,rr)
REGISTER_PAIRS = MappingProxyType({
    "bc": 0,
    "de": 1,
    "hl": 2,
    "sp": 3,
})

# PUSH/POP replace SP with AF in the same field slot
STACK_REGISTER_PAIRS = MappingProxyType({
    "bc": 0,
    "de": 1,
    "hl": 2,
    "af": 3,
})

# Pairs usable as a memory pointer outside the (hl) register form
INDIRECT_REGISTER_PAIRS = MappingProxyType({
    "bc": 0,
    "de": 1,
})

CONDITIONS = MappingProxyType({
    "nz": 0,
    "z": 1,
    "nc": 2,
    "c": 3,
})

# Names that can never be used as labels: they would be ambiguous with
# register or condition operands.
RESERVED_NAMES: frozenset[str] = frozenset(
    {"a", "b", "c", "d", "e", "h", "l", "af", "nz", "z", "nc"}
    | set(REGISTER_PAIRS)
)

# RST targets: the eight fixed restart vectors
RST_VECTORS: tuple[int, ...] = (0x00, 0x08, 0x10, 0x18, 0x20, 0x28, 0x30, 0x38)


def is_reserved_name(name: str) -> bool:
    """Return True if the name is a register, pair or condition keyword."""
    return name in RESERVED_NAMES


def is_register_pair(name: str) -> bool:
    """Return True if the name is one of bc, de, hl, sp."""
    return name in REGISTER_PAIRS


# =============================================================================
# Opcode Tables
# =============================================================================

CB_PREFIX = 0xCB

# Instructions with one fixed encoding; operands are not inspected.
# HALT and STOP are followed by a $00 pad byte.
FIXED_OPCODES = MappingProxyType({
    Mnemonic.NOP: b"\x00",
    Mnemonic.RLCA: b"\x07",
    Mnemonic.RRCA: b"\x0f",
    Mnemonic.RLA: b"\x17",
    Mnemonic.RRA: b"\x1f",
    Mnemonic.DAA: b"\x27",
    Mnemonic.CPL: b"\x2f",
    Mnemonic.SCF: b"\x37",
    Mnemonic.CCF: b"\x3f",
    Mnemonic.RETI: b"\xd9",
    Mnemonic.DI: b"\xf3",
    Mnemonic.EI: b"\xfb",
    Mnemonic.HALT: b"\x76\x00",
    Mnemonic.STOP: b"\x10\x00",
})

# 8-bit ALU operations: (register base, immediate base)
#   ADD A,r -> 0x80 | r      ADD A,n -> 0xC6 n
ALU_OPCODES = MappingProxyType({
    Mnemonic.ADD: (0x80, 0xC6),
    Mnemonic.ADC: (0x88, 0xCE),
    Mnemonic.SUB: (0x90, 0xD6),
    Mnemonic.SBC: (0x98, 0xDE),
    Mnemonic.AND: (0xA0, 0xE6),
    Mnemonic.XOR: (0xA8, 0xEE),
    Mnemonic.OR: (0xB0, 0xF6),
    Mnemonic.CP: (0xB8, 0xFE),
})

# ALU operations written with the accumulator spelled out: "adc a, b"
ACCUMULATOR_ALU: frozenset[Mnemonic] = frozenset({
    Mnemonic.ADD, Mnemonic.ADC, Mnemonic.SUB, Mnemonic.SBC,
})

# $CB page rotates/shifts: $CB (base | r)
CB_SHIFT_OPCODES = MappingProxyType({
    Mnemonic.RLC: 0x00,
    Mnemonic.RRC: 0x08,
    Mnemonic.RL: 0x10,
    Mnemonic.RR: 0x18,
    Mnemonic.SLA: 0x20,
    Mnemonic.SRA: 0x28,
    Mnemonic.SWAP: 0x30,
    Mnemonic.SRL: 0x38,
})

# $CB page bit operations: $CB (base | bit << 3 | r)
CB_BIT_OPCODES = MappingProxyType({
    Mnemonic.BIT: 0x40,
    Mnemonic.RES: 0x80,
    Mnemonic.SET: 0xC0,
})

# Instructions whose label operand is a signed displacement, not an address
RELATIVE_BRANCHES: frozenset[Mnemonic] = frozenset({Mnemonic.JR})


def is_relative_branch(name: str) -> bool:
    """Return True if the mnemonic takes a PC-relative displacement."""
    return lookup_mnemonic(name) in RELATIVE_BRANCHES
