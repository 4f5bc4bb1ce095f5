"""
SM83 Operand Parsers
====================

Each parser turns one lowercase operand token into the integer the
encoder needs, or raises OperandError. Register, pair, condition and bit
parsers return values already shifted into their opcode bit position, so
the encoder only has to OR them into a base byte.

Numeric Literals
----------------
| Syntax   | Meaning              | Example        |
|----------|----------------------|----------------|
| $hex     | hexadecimal          | $ff, $0150     |
| digits   | decimal              | 255, 336       |
| $-hex    | signed hexadecimal   | $-06           |
| -digits  | signed decimal       | -6             |

Signs are only accepted by the signed parser (displacements and SP
offsets). Memory operands are written in parentheses: (hl), (bc), ($ff80).
"""

import re

from gb_sdk.cpu import (
    REGISTERS_8,
    REGISTER_PAIRS,
    STACK_REGISTER_PAIRS,
    INDIRECT_REGISTER_PAIRS,
    CONDITIONS,
)
from gb_sdk.errors import OperandError


_UNSIGNED_DEC = re.compile(r"^[0-9]+$")
_UNSIGNED_HEX = re.compile(r"^[0-9a-f]+$")
_SIGNED_DEC = re.compile(r"^[+-]?[0-9]+$")
_SIGNED_HEX = re.compile(r"^[+-]?[0-9a-f]+$")


# =============================================================================
# Numeric Literals
# =============================================================================

def _parse_literal(token: str, signed: bool) -> int:
    """Parse a $hex or decimal literal without range checking."""
    if token.startswith("$"):
        digits, base = token[1:], 16
        pattern = _SIGNED_HEX if signed else _UNSIGNED_HEX
    else:
        digits, base = token, 10
        pattern = _SIGNED_DEC if signed else _UNSIGNED_DEC

    if not pattern.match(digits):
        kind = "signed number" if signed else "number"
        raise OperandError(f"invalid {kind} '{token}'", token=token)
    return int(digits, base)


def _check_range(token: str, value: int, low: int, high: int, what: str) -> int:
    if not low <= value <= high:
        raise OperandError(
            f"{what} '{token}' out of range ({low} to {high})",
            token=token,
        )
    return value


def parse_uint16(token: str) -> int:
    """Parse an unsigned 16-bit literal (0..65535)."""
    return _check_range(token, _parse_literal(token, signed=False), 0, 0xFFFF, "16-bit value")


def parse_uint8(token: str) -> int:
    """Parse an unsigned 8-bit literal (0..255)."""
    return _check_range(token, _parse_literal(token, signed=False), 0, 0xFF, "8-bit value")


def parse_int8(token: str) -> int:
    """
    Parse a signed 8-bit literal (-128..127).

    Used for JR displacements and the SP offsets of ADD SP,e and LDHL SP,e.
    The caller emits the two's complement byte (value & 0xFF).
    """
    return _check_range(token, _parse_literal(token, signed=True), -128, 127, "signed 8-bit value")


def parse_bit(token: str) -> int:
    """Parse a bit index 0..7, shifted into bits 3-5."""
    bit = _parse_literal(token, signed=False)
    if bit > 7:
        raise OperandError(f"bit index '{token}' must be 0..7 inclusive", token=token)
    return bit << 3


# =============================================================================
# Registers and Conditions
# =============================================================================

def _lookup(token: str, table, what: str) -> int:
    try:
        return table[token]
    except KeyError:
        expected = ", ".join(table)
        raise OperandError(
            f"unknown {what} '{token}', expected one of {expected}",
            token=token,
        ) from None


def parse_reg8_src(token: str) -> int:
    """Parse an 8-bit register (or (hl)) into bits 0-2."""
    return _lookup(token, REGISTERS_8, "register")


def parse_reg8_dst(token: str) -> int:
    """Parse an 8-bit register (or (hl)) into bits 3-5."""
    return parse_reg8_src(token) << 3


def parse_reg16(token: str) -> int:
    """Parse bc/de/hl/sp into bits 4-5."""
    return _lookup(token, REGISTER_PAIRS, "register pair") << 4


def parse_reg16_stack(token: str) -> int:
    """Parse bc/de/hl/af (PUSH/POP encoding) into bits 4-5."""
    return _lookup(token, STACK_REGISTER_PAIRS, "register pair") << 4


def parse_condition(token: str) -> int:
    """Parse nz/z/nc/c into bits 3-4."""
    return _lookup(token, CONDITIONS, "condition") << 3


# =============================================================================
# Memory Operands
# =============================================================================

def _strip_parens(token: str) -> str:
    if len(token) < 3 or token[0] != "(" or token[-1] != ")":
        raise OperandError(f"expected address in parentheses, got '{token}'", token=token)
    return token[1:-1]


def parse_addr8(token: str) -> int:
    """Parse a parenthesized 8-bit address: ($ff)."""
    return parse_uint8(_strip_parens(token))


def parse_addr16(token: str) -> int:
    """Parse a parenthesized 16-bit address: ($c000)."""
    return parse_uint16(_strip_parens(token))


def parse_addr_reg(token: str) -> int:
    """
    Parse (bc) or (de) into bits 4-5.

    (hl) is deliberately absent: it is an 8-bit register operand and is
    handled by the register parsers.
    """
    if len(token) > 2 and token[0] == "(" and token[-1] == ")":
        pair = token[1:-1]
        if pair in INDIRECT_REGISTER_PAIRS:
            return INDIRECT_REGISTER_PAIRS[pair] << 4
    expected = ", ".join(f"({p})" for p in INDIRECT_REGISTER_PAIRS)
    raise OperandError(
        f"unknown register '{token}', expected one of {expected}",
        token=token,
    )
