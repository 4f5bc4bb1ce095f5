"""
SM83 Assembly Language Parser
=============================

This module converts assembly source into a TranslationUnit: named
sections of instructions plus a record of every label reference.

Source Format
-------------
The format is strictly line oriented and case-insensitive:

```asm
; comment to end of line
.main               ; label declaration: opens section 'main'
    ld a, $03       ; instruction: mnemonic + operands
    jr nz, loop     ; label reference
.table align        ; section starting on a $100 boundary
<tiles.bin          ; data block: opens section 'data_tiles_bin'
```

| Line starts with | Meaning                                           |
|------------------|---------------------------------------------------|
| `.`              | label declaration, optional trailing `align`      |
| `<`              | data block loaded from a file, optional `align`   |
| anything else    | instruction, split on whitespace or commas        |

Label References
----------------
Any operand that looks like a label (and is not a register or condition
keyword) is recorded as a LabelUsage and replaced by a placeholder of the
right size, so the encoder can validate the instruction and emit the
final number of bytes before any address is known:

| Instruction            | Placeholder | Patched by the linker as   |
|------------------------|-------------|----------------------------|
| jr [cc,] label         | $66         | signed 8-bit displacement  |
| ld rr, label           | $6666       | 16-bit address             |
| ld a, label / ld label, a | ($6666)  | 16-bit address             |
| jp/call [cc,] label    | $6666       | 16-bit address             |
"""

from dataclasses import dataclass, field
from difflib import get_close_matches
from pathlib import Path
from typing import Callable, Iterable, Optional
import logging
import re

from gb_sdk.cpu import Mnemonic, is_reserved_name, is_register_pair
from gb_sdk.errors import (
    AssemblySyntaxError,
    DataFileError,
    DuplicateSymbolError,
    SourceLocation,
    UndefinedSymbolError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

LABEL_MARKER = "."
DATA_MARKER = "<"
COMMENT_MARKER = ";"
ALIGN_KEYWORD = "align"

RELATIVE_PLACEHOLDER = "$66"
WORD_PLACEHOLDER = "$6666"
ADDRESS_PLACEHOLDER = "($6666)"

LABEL_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
_DATA_LABEL_REPLACE = re.compile(r"[^a-z0-9_]+")
_OPERAND_SEPARATOR = re.compile(r"[\s,]+")

DataLoader = Callable[[str], bytes]


# =============================================================================
# Data Model
# =============================================================================

@dataclass
class Instruction:
    """
    One instruction line, not yet encoded.

    Attributes:
        name: Lowercase mnemonic
        operands: Lowercase operand tokens; label operands are replaced by
                  placeholders during parsing
        line: Source line number (1-indexed)
        filename: Source filename for error reporting
        text: Source text of the line (comment stripped)

    Encoding failures are not stored here; they are raised as
    AssemblerError subclasses carrying this line's location.
    """
    name: str
    operands: list[str]
    line: int
    filename: str = "<input>"
    text: str = ""

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line)


@dataclass
class Section:
    """
    A named run of code, optionally preceded by raw data.

    Attributes:
        label: Section name (lowercase)
        line: Line of the declaration
        data: Embedded data block placed before the instructions
        instructions: Instructions in source order
        align: Start the section on a $100 boundary
    """
    label: str
    line: int
    data: bytes = b""
    instructions: list[Instruction] = field(default_factory=list)
    align: bool = False


@dataclass(frozen=True)
class LabelUsage:
    """
    A reference to a label from an instruction operand.

    Attributes:
        target: Referenced label
        section: Label of the section containing the instruction
        index: Zero-based index of the instruction within that section
    """
    target: str
    section: str
    index: int


@dataclass
class TranslationUnit:
    """
    Result of parsing: sections, declaration order and label references.

    Invariant: every LabelUsage.target is a key of `sections`.
    """
    sections: dict[str, Section] = field(default_factory=dict)
    labels: list[str] = field(default_factory=list)
    label_usages: list[LabelUsage] = field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================

def is_valid_label(name: str) -> bool:
    """Return True if name is lowercase alphanumeric + underscore."""
    return bool(LABEL_PATTERN.match(name))


def is_label_reference(token: str) -> bool:
    """Return True if an operand token refers to a label."""
    return is_valid_label(token) and not is_reserved_name(token)


def data_label(path: str) -> str:
    """
    Derive the section label of a data block from its path.

    The '.' of the prefix becomes '_' along with every other run of
    characters that is not allowed in a label:
        'gfx/tiles.bin' -> 'data_gfx_tiles_bin'
    """
    return _DATA_LABEL_REPLACE.sub("_", f"data.{path.lower()}")


def placeholder_for(name: str, operands: list[str]) -> str:
    """Return the placeholder that stands in for a label operand."""
    if name == Mnemonic.JR.value:
        return RELATIVE_PLACEHOLDER
    if name == Mnemonic.LD.value:
        if len(operands) == 2 and is_register_pair(operands[0]):
            return WORD_PLACEHOLDER
        return ADDRESS_PLACEHOLDER
    return WORD_PLACEHOLDER


def split_instruction(text: str) -> tuple[str, list[str]]:
    """
    Split an instruction line into mnemonic and operand tokens.

    A line made only of separators gives an empty mnemonic.
    """
    parts = [p for p in _OPERAND_SEPARATOR.split(text) if p]
    if not parts:
        return "", []
    return parts[0], parts[1:]


class FileDataLoader:
    """
    Reads data blocks from disk.

    Relative paths are resolved against base_dir (the current directory
    when None). The directory is reported in DataFileError hints.
    """

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir) if base_dir is not None else None

    @property
    def search_path(self) -> Optional[str]:
        return str(self.base_dir) if self.base_dir is not None else None

    def __call__(self, path: str) -> bytes:
        file_path = Path(path)
        if self.base_dir is not None and not file_path.is_absolute():
            file_path = self.base_dir / file_path
        return file_path.read_bytes()


def file_data_loader(base_dir: str | Path | None = None) -> FileDataLoader:
    """Build a loader that reads data blocks relative to base_dir."""
    return FileDataLoader(base_dir)


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Parses SM83 assembly source into a TranslationUnit.

    The parser keeps one "current section" cursor. A label or data line
    commits the current section and opens the next; instruction lines are
    appended to whatever section is open.

    Usage:
        parser = Parser(filename="game.asm")
        unit = parser.parse(source.splitlines())
    """

    def __init__(
        self,
        filename: str = "<input>",
        data_loader: Optional[DataLoader] = None,
    ):
        """
        Initialize the parser.

        Args:
            filename: Source filename for error reporting
            data_loader: Callable returning the bytes of a data block path;
                         defaults to reading files relative to the
                         current directory
        """
        self._filename = filename
        self._data_loader = data_loader or file_data_loader()
        self._reset()

    def _reset(self) -> None:
        self._unit = TranslationUnit()
        self._current: Optional[Section] = None

    def _location(self, line: int) -> SourceLocation:
        return SourceLocation(self._filename, line)

    # =========================================================================
    # Entry Point
    # =========================================================================

    def parse(self, lines: Iterable[str]) -> TranslationUnit:
        """
        Parse source lines.

        Returns:
            The TranslationUnit

        Raises:
            AssemblySyntaxError: structural error or empty source
            DuplicateSymbolError: label declared twice
            DataFileError: data block cannot be loaded
            UndefinedSymbolError: references to undeclared labels
        """
        self._reset()

        for line_number, raw in enumerate(lines, start=1):
            self._parse_line(raw, line_number)

        self._commit_section()

        if not self._unit.sections:
            raise AssemblySyntaxError("there was nothing to parse")

        self._check_label_usages()

        logger.debug(
            "parsed %d section(s) with %d label reference(s)",
            len(self._unit.sections), len(self._unit.label_usages),
        )
        return self._unit

    # =========================================================================
    # Line Parsing
    # =========================================================================

    def _parse_line(self, raw: str, line_number: int) -> None:
        comment = raw.find(COMMENT_MARKER)
        if comment >= 0:
            raw = raw[:comment]

        original = raw.strip()
        if not original:
            return
        text = original.lower()

        if text.startswith(LABEL_MARKER):
            self._parse_label(text, line_number)
        elif text.startswith(DATA_MARKER):
            # Path keeps its case; only the derived label is lowercased
            self._parse_data(original, line_number)
        elif self._current is None:
            raise AssemblySyntaxError(
                "all asm must be under some label",
                self._location(line_number),
                hint="declare a section first, e.g. '.main'",
                source_line=original,
            )
        else:
            self._parse_instruction(text, line_number)

    def _split_declaration(self, text: str, line_number: int) -> tuple[str, bool]:
        """Split '<marker>name [align]' into (name, align)."""
        parts = text[1:].split()
        if not parts:
            return "", False

        align = False
        if len(parts) > 1 and parts[-1].lower() == ALIGN_KEYWORD:
            align = True
            parts = parts[:-1]

        if len(parts) > 1:
            raise AssemblySyntaxError(
                f"unexpected '{' '.join(parts[1:])}' after '{parts[0]}'",
                self._location(line_number),
                hint=f"only '{ALIGN_KEYWORD}' may follow a declaration",
                source_line=text,
            )
        return parts[0], align

    def _parse_label(self, text: str, line_number: int) -> None:
        label, align = self._split_declaration(text, line_number)
        self._open_section(label, line_number, text, align=align)

    def _parse_data(self, text: str, line_number: int) -> None:
        path, align = self._split_declaration(text, line_number)
        location = self._location(line_number)
        search_path = None
        if isinstance(self._data_loader, FileDataLoader):
            search_path = self._data_loader.search_path

        if not path:
            raise DataFileError("", "no file named", location, source_line=text)

        label = data_label(path)
        self._check_new_label(label, line_number, text)

        try:
            data = bytes(self._data_loader(path))
        except OSError as e:
            reason = e.strerror or str(e)
            raise DataFileError(
                path, reason, location, source_line=text, search_path=search_path
            ) from e

        logger.debug("loaded %d byte(s) of data from '%s'", len(data), path)
        self._open_section(label, line_number, text, data=data, align=align)

    def _check_new_label(self, label: str, line_number: int, text: str) -> None:
        location = self._location(line_number)

        if label in self._unit.sections or (self._current and self._current.label == label):
            original = self._unit.sections.get(label) or self._current
            raise DuplicateSymbolError(
                label, location,
                original_location=self._location(original.line),
                source_line=text,
            )
        if is_reserved_name(label):
            raise AssemblySyntaxError(
                f"'{label}' is reserved and can't be used as a label name",
                location,
                source_line=text,
            )
        if not is_valid_label(label):
            raise AssemblySyntaxError(
                f"label '{label}' is invalid (alphanumeric + underscore)",
                location,
                source_line=text,
            )

    def _open_section(
        self,
        label: str,
        line_number: int,
        text: str,
        data: bytes = b"",
        align: bool = False,
    ) -> None:
        self._check_new_label(label, line_number, text)
        self._commit_section()
        self._current = Section(label=label, line=line_number, data=data, align=align)
        self._unit.labels.append(label)
        logger.debug("line %d: opened section '%s'", line_number, label)

    def _commit_section(self) -> None:
        if self._current is not None:
            self._unit.sections[self._current.label] = self._current

    def _parse_instruction(self, text: str, line_number: int) -> None:
        section = self._current
        name, operands = split_instruction(text)
        if not name:
            raise AssemblySyntaxError(
                "missing instruction name",
                self._location(line_number),
                source_line=text,
            )
        index = len(section.instructions)

        for position, token in enumerate(operands):
            if is_label_reference(token):
                self._unit.label_usages.append(
                    LabelUsage(target=token, section=section.label, index=index)
                )
                operands[position] = placeholder_for(name, operands)

        section.instructions.append(Instruction(
            name=name,
            operands=operands,
            line=line_number,
            filename=self._filename,
            text=text,
        ))

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_label_usages(self) -> None:
        missing: list[str] = []
        for usage in self._unit.label_usages:
            if usage.target not in self._unit.sections and usage.target not in missing:
                missing.append(usage.target)

        if not missing:
            return

        similar: list[str] = []
        for name in missing:
            for match in get_close_matches(name, self._unit.labels, n=3, cutoff=0.6):
                if match not in similar:
                    similar.append(match)

        first = next(u for u in self._unit.label_usages if u.target == missing[0])
        instruction = self._unit.sections[first.section].instructions[first.index]
        raise UndefinedSymbolError(
            missing,
            location=instruction.location,
            source_line=instruction.text,
            similar_symbols=similar,
        )


# =============================================================================
# Convenience Function
# =============================================================================

def parse_source(
    source: str | Iterable[str],
    filename: str = "<input>",
    data_loader: Optional[DataLoader] = None,
) -> TranslationUnit:
    """
    Parse assembly source given as one string or as a sequence of lines.

    Args:
        source: Source text or lines
        filename: Source filename for error reporting
        data_loader: Loader for '<' data blocks

    Returns:
        The TranslationUnit
    """
    lines = source.splitlines() if isinstance(source, str) else source
    return Parser(filename, data_loader=data_loader).parse(lines)
