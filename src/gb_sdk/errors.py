"""
Game Boy SDK Error Hierarchy
============================

This module defines the exception hierarchy for the whole SDK. All
exceptions inherit from GBError, allowing callers to catch every
SDK-related error with a single except clause.

Exception Hierarchy
-------------------
GBError (base)
└── AssemblerError (assembler-related)
    ├── AssemblySyntaxError - structural errors in source
    ├── DuplicateSymbolError - label declared more than once
    ├── UndefinedSymbolError - reference to undeclared label(s)
    ├── DataFileError - data block file cannot be loaded
    ├── UnknownInstructionError - mnemonic not in the instruction set
    ├── OperandCountError - wrong number of operands
    ├── AddressingModeError - no operand form matches
    ├── OperandError - bad register, condition, literal or brackets
    ├── BranchRangeError - relative branch target too far
    └── LinkError - image layout cannot be built

Error messages follow this format:
    filename:line: error: description
        source_line_text
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class GBError(Exception):
    """
    Base exception for all SDK errors.

        try:
            assembler.assemble_file("game.asm")
        except GBError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A line in a source file, used for error reporting.

    The source format is strictly line-oriented, so the line number is the
    finest granularity the assembler tracks.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        """Format as 'filename:line' for error messages."""
        return f"{self.filename}:{self.line}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(GBError):
    """
    Base exception for all assembler and linker errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    @property
    def line(self) -> Optional[int]:
        """1-based source line of the error, if known."""
        return self.location.line if self.location else None

    def with_location(
        self,
        location: SourceLocation,
        source_line: Optional[str] = None,
    ) -> "AssemblerError":
        """
        Attach a source location to an error raised without one.

        Operand parsers and the encoder only see tokens; the caller that
        knows which line produced them fills the location in here.
        """
        self.location = location
        if source_line is not None:
            self.source_line = source_line
        self.args = (self._format_message(),)
        return self

    def __str__(self) -> str:
        return self._format_message()

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            game.asm:15: error: undefined label 'prnt_char'
                call prnt_char
            hint: did you mean 'print_char'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Structural error in assembly source code.

    Examples:
        - Instruction before any label declaration
        - Invalid or reserved label name
        - Unexpected token after a label declaration
        - Source with nothing to assemble
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Reference to one or more undeclared labels.

    Raised once after parsing completes, listing every missing name so
    the user can fix them all in one go. Similar declared labels are
    suggested when available.
    """

    def __init__(
        self,
        symbols: list[str],
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbols = list(symbols)
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        names = ", ".join(f"'{s}'" for s in self.symbols)
        noun = "label" if len(self.symbols) == 1 else "labels"
        super().__init__(
            f"undefined {noun} {names}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateSymbolError(AssemblerError):
    """
    Label declared more than once.

    Labels are case-insensitive, so 'Main' and 'main' collide.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first declared at {original_location}"

        super().__init__(
            f"duplicate label '{symbol}' (labels are case insensitive)",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DataFileError(AssemblerError):
    """
    A data block reference cannot be loaded.

    Raised when:
    - The '<' line names no file
    - The file does not exist or cannot be read
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_path: Optional[str] = None,
    ):
        self.data_filename = filename
        self.reason = reason
        self.search_path = search_path

        hint = f"searched in: {search_path}" if search_path else None

        super().__init__(
            f"cannot load data file '{filename}': {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class UnknownInstructionError(AssemblerError):
    """Mnemonic is not part of the SM83 instruction set."""

    def __init__(
        self,
        mnemonic: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        super().__init__(
            f"unknown instruction '{mnemonic}'",
            location=location,
            source_line=source_line,
        )


class OperandCountError(AssemblerError):
    """
    Instruction used with the wrong number of operands.

    Example:
        push bc, de   ; Error: 'push' expects 1 operand
    """

    def __init__(
        self,
        mnemonic: str,
        expected: tuple[int, ...],
        actual: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        self.expected = expected
        self.actual = actual

        counts = " or ".join(str(n) for n in expected)
        noun = "operand" if expected == (1,) else "operands"
        super().__init__(
            f"'{mnemonic}' has wrong number of operands, "
            f"expected {counts} {noun} but got {actual}",
            location=location,
            source_line=source_line,
        )


class AddressingModeError(AssemblerError):
    """
    No operand form of the instruction matches the operands given.

    The hint lists every form the mnemonic accepts.

    Example:
        ld (hl), sp   ; Error: no 'ld' form takes these operands
    """

    def __init__(
        self,
        mnemonic: str,
        operands: list[str],
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        valid_forms: Optional[list[str]] = None,
    ):
        self.mnemonic = mnemonic
        self.operands = list(operands)
        self.valid_forms = valid_forms or []

        hint = None
        if self.valid_forms:
            forms_str = "; ".join(f"{mnemonic} {f}".rstrip() for f in self.valid_forms)
            hint = f"{mnemonic} supports: {forms_str}"

        super().__init__(
            f"'{mnemonic}' has invalid operands '{', '.join(operands)}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class OperandError(AssemblerError):
    """
    A single operand token cannot be interpreted.

    Raised by the operand parsers for:
    - Unknown register, register pair or condition
    - Malformed or out-of-range numeric literal
    - Missing or unexpected parentheses
    - A literal that parses but is not a legal value (e.g. rst $05)
    """

    def __init__(
        self,
        message: str,
        token: str = "",
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.token = token
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class BranchRangeError(AssemblerError):
    """
    Relative branch target is out of range.

    'jr' encodes a signed 8-bit displacement from the address following
    the 2-byte instruction, limiting the reach to -128..+127 bytes.
    Use 'jp' for targets further away.
    """

    def __init__(
        self,
        target: str,
        offset: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.target = target
        self.offset = offset

        direction = "forward" if offset > 0 else "backward"
        hint = (
            f"branch offset is {offset}, but range is -128 to +127; "
            f"consider using jp for {direction} references"
        )

        super().__init__(
            f"jr target '{target}' is out of range (offset: {offset})",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class LinkError(AssemblerError):
    """
    The image layout cannot be built.

    Raised when:
    - The entry section ('main') is not declared
    - A vector section does not fit its 8-byte slot
    - A label resolves to an address beyond the 16-bit address space
    """
    pass
