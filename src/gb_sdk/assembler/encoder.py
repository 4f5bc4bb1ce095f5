"""
SM83 Instruction Encoder
========================

This module turns parsed instructions into SM83 machine code.

Dispatch
--------
Encoding is a two-level dispatch:

1. By mnemonic, through a table keyed by the Mnemonic enum. Every member
   has an entry; tests verify the table is complete.
2. Within a mnemonic, by operand count and then by the first operand form
   whose parsers all accept the operands.

Operand forms are tried in a fixed order and each one is a pure function
of the operand tokens. That order matters for LD, where the textual shapes
overlap:

| #  | Form            | Encoding            |
|----|-----------------|---------------------|
| 1  | ld r, r'        | 40 | r<<3 | r'      |
| 2  | ld r, n         | 06 | r<<3, n        |
| 3  | ld rr, nn       | 01 | rr<<4, lo, hi  |
| 4  | ld (bc/de), a   | 02 | rr<<4          |
| 5  | ld a, (bc/de)   | 0A | rr<<4          |
| 6  | ld a, (nn)      | FA, lo, hi          |
| 7  | ld (nn), a      | EA, lo, hi          |
| 8  | ld (nn), sp     | 08, lo, hi          |

Errors
------
The encoder raises, it never returns partial results:

- UnknownInstructionError: mnemonic not in the instruction set
- OperandCountError: wrong number of operands
- AddressingModeError: no operand form matches (lists the legal forms)
- OperandError: the single legal form rejected an operand

Errors are tagged with the instruction's source line before they leave
encode().
"""

from dataclasses import dataclass, field
from typing import Callable, Sequence
import logging

from gb_sdk.assembler.operands import (
    parse_uint16,
    parse_uint8,
    parse_int8,
    parse_bit,
    parse_reg8_src,
    parse_reg8_dst,
    parse_reg16,
    parse_reg16_stack,
    parse_addr8,
    parse_addr16,
    parse_addr_reg,
    parse_condition,
)
from gb_sdk.assembler.parser import Instruction
from gb_sdk.cpu import (
    Mnemonic,
    lookup_mnemonic,
    RST_VECTORS,
    CB_PREFIX,
    FIXED_OPCODES,
    ALU_OPCODES,
    ACCUMULATOR_ALU,
    CB_SHIFT_OPCODES,
    CB_BIT_OPCODES,
)
from gb_sdk.errors import (
    AssemblerError,
    AddressingModeError,
    OperandCountError,
    OperandError,
    UnknownInstructionError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Encoded Output
# =============================================================================

@dataclass
class EncodedSection:
    """
    Machine code for one section.

    Attributes:
        code: Data block bytes followed by the encoded instructions
        offsets: Start offset in `code` of each instruction, parallel to
                 the section's instruction list
    """
    code: bytes = b""
    offsets: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.code)


# =============================================================================
# Operand Forms
# =============================================================================

@dataclass(frozen=True)
class OperandForm:
    """
    One legal operand shape of a mnemonic.

    Attributes:
        syntax: Human-readable form for error hints (e.g. "a, (nn)")
        encode: Builds the bytes from the operand tokens, raising
                OperandError when the operands do not fit this form
    """
    syntax: str
    encode: Callable[[Sequence[str]], bytes]


def _require(token: str, expected: str) -> None:
    if token != expected:
        raise OperandError(f"expected '{expected}', got '{token}'", token=token)


def _word(value: int) -> tuple[int, int]:
    """Split a 16-bit value into (low, high) for little-endian emission."""
    return value & 0xFF, (value >> 8) & 0xFF


def _ld_reg_reg(ops: Sequence[str]) -> bytes:
    if ops[0] == "(hl)" and ops[1] == "(hl)":
        # $76 is HALT; there is no LD (HL),(HL)
        raise OperandError("'ld (hl), (hl)' is not an instruction", token=ops[1])
    return bytes([0x40 | parse_reg8_dst(ops[0]) | parse_reg8_src(ops[1])])


def _ld_reg_imm(ops: Sequence[str]) -> bytes:
    return bytes([0x06 | parse_reg8_dst(ops[0]), parse_uint8(ops[1])])


def _ld_pair_imm(ops: Sequence[str]) -> bytes:
    return bytes([0x01 | parse_reg16(ops[0]), *_word(parse_uint16(ops[1]))])


def _ld_indirect_pair_a(ops: Sequence[str]) -> bytes:
    pair = parse_addr_reg(ops[0])
    _require(ops[1], "a")
    return bytes([0x02 | pair])


def _ld_a_indirect_pair(ops: Sequence[str]) -> bytes:
    _require(ops[0], "a")
    return bytes([0x0A | parse_addr_reg(ops[1])])


def _ld_a_addr(ops: Sequence[str]) -> bytes:
    _require(ops[0], "a")
    return bytes([0xFA, *_word(parse_addr16(ops[1]))])


def _ld_addr_a(ops: Sequence[str]) -> bytes:
    address = parse_addr16(ops[0])
    _require(ops[1], "a")
    return bytes([0xEA, *_word(address)])


def _ld_addr_sp(ops: Sequence[str]) -> bytes:
    address = parse_addr16(ops[0])
    _require(ops[1], "sp")
    return bytes([0x08, *_word(address)])


# Priority order is significant: the first form that accepts wins.
LD_FORMS: tuple[OperandForm, ...] = (
    OperandForm("r, r'", _ld_reg_reg),
    OperandForm("r, n", _ld_reg_imm),
    OperandForm("rr, nn", _ld_pair_imm),
    OperandForm("(bc|de), a", _ld_indirect_pair_a),
    OperandForm("a, (bc|de)", _ld_a_indirect_pair),
    OperandForm("a, (nn)", _ld_a_addr),
    OperandForm("(nn), a", _ld_addr_a),
    OperandForm("(nn), sp", _ld_addr_sp),
)


def _fixed_form(syntax: str, opcode: int) -> OperandForm:
    """A form that only accepts the exact operand text `syntax`."""
    expected = [part.strip() for part in syntax.split(",")]

    def encode(ops: Sequence[str]) -> bytes:
        for token, want in zip(ops, expected):
            _require(token, want)
        return bytes([opcode])

    return OperandForm(syntax, encode)


LDI_FORMS = (_fixed_form("(hl), a", 0x22), _fixed_form("a, (hl)", 0x2A))
LDD_FORMS = (_fixed_form("(hl), a", 0x32), _fixed_form("a, (hl)", 0x3A))


def _ldh_a_addr(ops: Sequence[str]) -> bytes:
    _require(ops[0], "a")
    return bytes([0xF0, parse_addr8(ops[1])])


def _ldh_addr_a(ops: Sequence[str]) -> bytes:
    address = parse_addr8(ops[0])
    _require(ops[1], "a")
    return bytes([0xE0, address])


# (c) is the I/O port $FF00+C here, never a register pair
LDH_FORMS = (
    _fixed_form("a, (c)", 0xF2),
    _fixed_form("(c), a", 0xE2),
    OperandForm("a, (n)", _ldh_a_addr),
    OperandForm("(n), a", _ldh_addr_a),
)


def _alu_forms(reg_base: int, imm_base: int, prefix: str) -> tuple[OperandForm, ...]:
    """Register and immediate forms of an 8-bit ALU operation."""
    return (
        OperandForm(f"{prefix}r", lambda ops: bytes([reg_base | parse_reg8_src(ops[-1])])),
        OperandForm(f"{prefix}n", lambda ops: bytes([imm_base, parse_uint8(ops[-1])])),
    )


ADD_FORMS_SYNTAX = ["hl, rr", "sp, e", "a, r", "a, n"]


# =============================================================================
# Helpers
# =============================================================================

def _expect_count(mnemonic: Mnemonic, ops: Sequence[str], *counts: int) -> None:
    if len(ops) not in counts:
        raise OperandCountError(str(mnemonic), counts, len(ops))


def _match_forms(mnemonic: Mnemonic, ops: Sequence[str], forms: Sequence[OperandForm]) -> bytes:
    """Return the encoding of the first form that accepts the operands."""
    for form in forms:
        try:
            return form.encode(ops)
        except OperandError:
            continue
    raise AddressingModeError(
        str(mnemonic), list(ops),
        valid_forms=[form.syntax for form in forms],
    )


# =============================================================================
# Per-Mnemonic Encoders
# =============================================================================

def _encode_fixed(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 0)
    return FIXED_OPCODES[mnemonic]


def _encode_ld(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    return _match_forms(mnemonic, ops, LD_FORMS)


def _encode_ldi(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    return _match_forms(mnemonic, ops, LDI_FORMS)


def _encode_ldd(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    return _match_forms(mnemonic, ops, LDD_FORMS)


def _encode_ldh(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    return _match_forms(mnemonic, ops, LDH_FORMS)


def _encode_ldhl(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    if ops[0] != "sp":
        raise AddressingModeError(str(mnemonic), list(ops), valid_forms=["sp, e"])
    return bytes([0xF8, parse_int8(ops[1]) & 0xFF])


def _encode_inc(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    return bytes([0x04 | parse_reg8_dst(ops[0])])


def _encode_dec(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    return bytes([0x05 | parse_reg8_dst(ops[0])])


def _encode_add(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    target = ops[0]
    if target == "hl":
        return bytes([0x09 | parse_reg16(ops[1])])
    if target == "sp":
        return bytes([0xE8, parse_int8(ops[1]) & 0xFF])
    if target == "a":
        return _match_forms(mnemonic, ops, _alu_forms(*ALU_OPCODES[mnemonic], prefix="a, "))
    raise AddressingModeError(str(mnemonic), list(ops), valid_forms=ADD_FORMS_SYNTAX)


def _encode_alu(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    """ADC/SUB/SBC take 'a, x'; AND/XOR/OR/CP take just 'x'."""
    reg_base, imm_base = ALU_OPCODES[mnemonic]
    if mnemonic in ACCUMULATOR_ALU:
        _expect_count(mnemonic, ops, 2)
        forms = _alu_forms(reg_base, imm_base, prefix="a, ")
        if ops[0] != "a":
            raise AddressingModeError(
                str(mnemonic), list(ops), valid_forms=[f.syntax for f in forms]
            )
    else:
        _expect_count(mnemonic, ops, 1)
        forms = _alu_forms(reg_base, imm_base, prefix="")
    return _match_forms(mnemonic, ops, forms)


def _encode_jr(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1, 2)
    if len(ops) == 1:
        return bytes([0x18, parse_int8(ops[0]) & 0xFF])
    condition = parse_condition(ops[0])
    return bytes([0x20 | condition, parse_int8(ops[1]) & 0xFF])


def _encode_jp(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1, 2)
    if len(ops) == 1:
        if ops[0] == "hl":
            return b"\xe9"
        return bytes([0xC3, *_word(parse_uint16(ops[0]))])
    condition = parse_condition(ops[0])
    return bytes([0xC2 | condition, *_word(parse_uint16(ops[1]))])


def _encode_call(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1, 2)
    if len(ops) == 1:
        return bytes([0xCD, *_word(parse_uint16(ops[0]))])
    condition = parse_condition(ops[0])
    return bytes([0xC4 | condition, *_word(parse_uint16(ops[1]))])


def _encode_ret(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 0, 1)
    if not ops:
        return b"\xc9"
    return bytes([0xC0 | parse_condition(ops[0])])


def _encode_rst(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    vector = parse_uint16(ops[0])
    if vector not in RST_VECTORS:
        legal = ", ".join(f"${v:02x}" for v in RST_VECTORS)
        raise OperandError(
            f"rst vector '{ops[0]}' is not valid, expected one of {legal}",
            token=ops[0],
        )
    # Vector address already sits in bits 3-5
    return bytes([0xC7 | vector])


def _encode_push(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    return bytes([0xC5 | parse_reg16_stack(ops[0])])


def _encode_pop(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    return bytes([0xC1 | parse_reg16_stack(ops[0])])


def _encode_cb_shift(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 1)
    return bytes([CB_PREFIX, CB_SHIFT_OPCODES[mnemonic] | parse_reg8_src(ops[0])])


def _encode_cb_bit(mnemonic: Mnemonic, ops: Sequence[str]) -> bytes:
    _expect_count(mnemonic, ops, 2)
    bit = parse_bit(ops[0])
    register = parse_reg8_src(ops[1])
    return bytes([CB_PREFIX, CB_BIT_OPCODES[mnemonic] | bit | register])


Encoder = Callable[[Mnemonic, Sequence[str]], bytes]

ENCODERS: dict[Mnemonic, Encoder] = {
    Mnemonic.LD: _encode_ld,
    Mnemonic.LDI: _encode_ldi,
    Mnemonic.LDD: _encode_ldd,
    Mnemonic.LDH: _encode_ldh,
    Mnemonic.LDHL: _encode_ldhl,
    Mnemonic.INC: _encode_inc,
    Mnemonic.DEC: _encode_dec,
    Mnemonic.ADD: _encode_add,
    Mnemonic.JR: _encode_jr,
    Mnemonic.JP: _encode_jp,
    Mnemonic.CALL: _encode_call,
    Mnemonic.RET: _encode_ret,
    Mnemonic.RST: _encode_rst,
    Mnemonic.PUSH: _encode_push,
    Mnemonic.POP: _encode_pop,
    **{m: _encode_alu for m in ALU_OPCODES if m is not Mnemonic.ADD},
    **{m: _encode_fixed for m in FIXED_OPCODES},
    **{m: _encode_cb_shift for m in CB_SHIFT_OPCODES},
    **{m: _encode_cb_bit for m in CB_BIT_OPCODES},
}


# =============================================================================
# Public Interface
# =============================================================================

def encode_operands(name: str, operands: Sequence[str]) -> bytes:
    """
    Encode a mnemonic and its operand tokens, without source tracking.

    Args:
        name: Lowercase mnemonic
        operands: Lowercase operand tokens

    Returns:
        The 1-3 byte encoding (4 never occurs on the SM83)

    Raises:
        AssemblerError: If the instruction cannot be encoded
    """
    mnemonic = lookup_mnemonic(name)
    if mnemonic is None:
        raise UnknownInstructionError(name)
    return ENCODERS[mnemonic](mnemonic, list(operands))


def encode(instruction: Instruction) -> bytes:
    """
    Encode one parsed instruction.

    Raises:
        AssemblerError: tagged with the instruction's source line
    """
    try:
        return encode_operands(instruction.name, instruction.operands)
    except AssemblerError as e:
        if e.location is None:
            e.with_location(instruction.location, instruction.text or None)
        raise


def assemble_instructions(
    instructions: Sequence[Instruction],
    data: bytes = b"",
) -> EncodedSection:
    """
    Encode a run of instructions, optionally preceded by a data block.

    Args:
        instructions: Instructions in section order
        data: Raw bytes placed before the first instruction

    Returns:
        EncodedSection whose offsets already include len(data)

    Raises:
        AssemblerError: on the first instruction that fails to encode
    """
    code = bytearray(data)
    offsets: list[int] = []

    for instruction in instructions:
        try:
            encoded = encode(instruction)
        except AssemblerError:
            logger.debug(
                "encoding stopped at line %d after %d instruction(s), offsets %s",
                instruction.line, len(offsets), offsets,
            )
            raise
        offsets.append(len(code))
        code.extend(encoded)

    return EncodedSection(code=bytes(code), offsets=offsets)
