# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the SM83 source parser.
#
# Test coverage includes:
#   - Comments, blank lines, case folding and operand splitting
#   - Section declarations, alignment and data blocks
#   - Label reference recording and placeholder rewriting
#   - Structural errors: orphan instructions, bad/duplicate labels,
#     undefined references, empty source
# =============================================================================

import pytest

from gb_sdk.assembler.parser import (
    LabelUsage,
    Parser,
    data_label,
    FileDataLoader,
    file_data_loader,
    parse_source,
    placeholder_for,
)
from gb_sdk.errors import (
    AssemblySyntaxError,
    DataFileError,
    DuplicateSymbolError,
    UndefinedSymbolError,
)


def loader_for(files: dict):
    """A data loader backed by a dict; unknown names raise FileNotFoundError."""
    def load(path):
        try:
            return files[path]
        except KeyError:
            raise FileNotFoundError(2, "No such file or directory", path) from None
    return load


# =============================================================================
# Basic Line Handling
# =============================================================================

class TestLines:
    """Test comments, whitespace and instruction splitting."""

    def test_single_section(self):
        unit = parse_source(".main\n    ld a, $03\n    di\n")
        assert unit.labels == ["main"]
        section = unit.sections["main"]
        assert [i.name for i in section.instructions] == ["ld", "di"]
        assert section.instructions[0].operands == ["a", "$03"]

    def test_comments_and_blank_lines(self):
        source = """
; header comment

.main           ; entry point
    nop         ; do nothing
        ; indented comment
"""
        unit = parse_source(source)
        instructions = unit.sections["main"].instructions
        assert len(instructions) == 1
        assert instructions[0].line == 5

    def test_case_folding(self):
        unit = parse_source(".MAIN\n    LD A, $FF\n")
        instruction = unit.sections["main"].instructions[0]
        assert instruction.name == "ld"
        assert instruction.operands == ["a", "$ff"]

    def test_operands_split_on_commas_and_spaces(self):
        unit = parse_source(".main\n    ld   a,b\n    ld c ,  d\n")
        instructions = unit.sections["main"].instructions
        assert instructions[0].operands == ["a", "b"]
        assert instructions[1].operands == ["c", "d"]

    def test_instruction_keeps_source_text(self):
        unit = parse_source(".main\n    ld a, b ; copy\n", filename="game.asm")
        instruction = unit.sections["main"].instructions[0]
        assert instruction.text == "ld a, b"
        assert str(instruction.location) == "game.asm:2"

    def test_accepts_line_sequence(self):
        unit = parse_source([".main", "nop"])
        assert unit.sections["main"].instructions[0].line == 2

    def test_sections_in_declaration_order(self):
        unit = parse_source(".main\nnop\n.zeta\nnop\n.alpha\nnop\n")
        assert unit.labels == ["main", "zeta", "alpha"]

    def test_empty_section(self):
        unit = parse_source(".main\n.other\nnop\n")
        assert unit.sections["main"].instructions == []

    def test_parser_is_reusable(self):
        parser = Parser()
        parser.parse([".main", "nop"])
        unit = parser.parse([".other", "nop"])
        assert unit.labels == ["other"]

    @pytest.mark.parametrize("line", [",", "  ,  ", ", ,\t,"])
    def test_separator_only_line(self, line):
        with pytest.raises(AssemblySyntaxError, match="missing instruction name") as exc_info:
            parse_source(f".main\n{line}\n", filename="game.asm")
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("game.asm:2: error:")


# =============================================================================
# Label Declarations
# =============================================================================

class TestLabels:
    """Test section declarations and their validation."""

    def test_align_flag(self):
        unit = parse_source(".main\nnop\n.table align\nnop\n")
        assert unit.sections["table"].align is True
        assert unit.sections["main"].align is False

    def test_align_is_case_insensitive(self):
        unit = parse_source(".main\nnop\n.table ALIGN\nnop\n")
        assert unit.sections["table"].align is True

    def test_trailing_token_rejected(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected 'foo'"):
            parse_source(".main foo\nnop\n")

    @pytest.mark.parametrize("name", ["a", "hl", "nz", "c", "af", "sp"])
    def test_reserved_names_rejected(self, name):
        with pytest.raises(AssemblySyntaxError, match="reserved"):
            parse_source(f".{name}\nnop\n")

    @pytest.mark.parametrize("name", ["1abc", "my-label", "x.y", ""])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(AssemblySyntaxError, match="invalid"):
            parse_source(f".{name}\nnop\n")

    def test_underscore_names(self):
        unit = parse_source("._start\nnop\n.main_2\nnop\n")
        assert unit.labels == ["_start", "main_2"]

    def test_duplicate_label(self):
        with pytest.raises(DuplicateSymbolError) as exc_info:
            parse_source(".main\nnop\n.loop\nnop\n.LOOP\nnop\n")
        error = exc_info.value
        assert error.symbol == "loop"
        assert error.line == 5
        assert "first declared at <input>:3" in error.hint

    def test_duplicate_of_open_section(self):
        with pytest.raises(DuplicateSymbolError):
            parse_source(".main\n.main\n")

    def test_instruction_before_label(self):
        with pytest.raises(AssemblySyntaxError, match="under some label") as exc_info:
            parse_source("nop\n.main\n")
        assert exc_info.value.line == 1

    def test_empty_source(self):
        with pytest.raises(AssemblySyntaxError, match="nothing to parse"):
            parse_source("")

    def test_only_comments(self):
        with pytest.raises(AssemblySyntaxError, match="nothing to parse"):
            parse_source("; nothing here\n\n   \n")


# =============================================================================
# Label References
# =============================================================================

class TestLabelUsages:
    """Test recording of label operands and placeholder substitution."""

    def test_jr_placeholder(self):
        unit = parse_source(".main\n    jr loop\n.loop\n    nop\n")
        assert unit.label_usages == [LabelUsage("loop", "main", 0)]
        assert unit.sections["main"].instructions[0].operands == ["$66"]

    def test_conditional_jr_placeholder(self):
        unit = parse_source(".main\n    jr nz, main\n")
        assert unit.sections["main"].instructions[0].operands == ["nz", "$66"]

    def test_register_pair_load_placeholder(self):
        unit = parse_source(".main\n    ld hl, table\n.table\n    nop\n")
        assert unit.sections["main"].instructions[0].operands == ["hl", "$6666"]

    def test_address_load_placeholders(self):
        unit = parse_source(".main\n    ld a, var\n    ld var, a\n.var\n    nop\n")
        instructions = unit.sections["main"].instructions
        assert instructions[0].operands == ["a", "($6666)"]
        assert instructions[1].operands == ["($6666)", "a"]

    def test_call_placeholder(self):
        unit = parse_source(".main\n    call c, func\n.func\n    ret\n")
        assert unit.sections["main"].instructions[0].operands == ["c", "$6666"]

    def test_usage_index_and_section(self):
        source = ".main\n    nop\n    nop\n    jp done\n.done\n    call main\n"
        unit = parse_source(source)
        assert unit.label_usages == [
            LabelUsage("done", "main", 2),
            LabelUsage("main", "done", 0),
        ]

    def test_multiple_usages_of_one_label(self):
        source = ".main\n    call func\n    call func\n.func\n    ret\n"
        unit = parse_source(source)
        assert [u.index for u in unit.label_usages] == [0, 1]

    def test_registers_are_not_labels(self):
        unit = parse_source(".main\n    ld b, c\n    jp hl\n    ret nc\n")
        assert unit.label_usages == []

    def test_literals_are_not_labels(self):
        unit = parse_source(".main\n    ld a, $ff\n    ld b, 10\n")
        assert unit.label_usages == []

    def test_undefined_labels_reported_together(self):
        source = ".main\n    call foo\n    jp bar\n    call foo\n"
        with pytest.raises(UndefinedSymbolError) as exc_info:
            parse_source(source)
        error = exc_info.value
        assert error.symbols == ["foo", "bar"]
        assert error.line == 2
        assert "'foo', 'bar'" in str(error)

    def test_undefined_label_suggestion(self):
        source = ".main\n    call prnt_char\n.print_char\n    ret\n"
        with pytest.raises(UndefinedSymbolError) as exc_info:
            parse_source(source)
        assert "print_char" in exc_info.value.similar_symbols
        assert "did you mean 'print_char'?" in str(exc_info.value)


class TestPlaceholderRules:
    """Direct tests of the placeholder choice."""

    @pytest.mark.parametrize("name,operands,expected", [
        ("jr", ["x"], "$66"),
        ("jr", ["z", "x"], "$66"),
        ("ld", ["bc", "x"], "$6666"),
        ("ld", ["sp", "x"], "$6666"),
        ("ld", ["a", "x"], "($6666)"),
        ("ld", ["x", "a"], "($6666)"),
        ("jp", ["x"], "$6666"),
        ("call", ["nz", "x"], "$6666"),
    ])
    def test_placeholder_for(self, name, operands, expected):
        assert placeholder_for(name, operands) == expected


# =============================================================================
# Data Blocks
# =============================================================================

class TestDataBlocks:
    """Test '<path' data sections."""

    @pytest.mark.parametrize("path,expected", [
        ("tiles.bin", "data_tiles_bin"),
        ("gfx/Font-8x8.chr", "data_gfx_font_8x8_chr"),
        ("map_01.dat", "data_map_01_dat"),
    ])
    def test_data_label(self, path, expected):
        assert data_label(path) == expected

    def test_data_section(self):
        loader = loader_for({"tiles.bin": b"\x01\x02\x03"})
        unit = Parser(data_loader=loader).parse([".main", "nop", "<tiles.bin", "ret"])
        section = unit.sections["data_tiles_bin"]
        assert section.data == b"\x01\x02\x03"
        assert [i.name for i in section.instructions] == ["ret"]
        assert unit.labels == ["main", "data_tiles_bin"]

    def test_data_path_keeps_case(self):
        loader = loader_for({"Tiles.BIN": b"\xff"})
        unit = Parser(data_loader=loader).parse([".main", "nop", "<Tiles.BIN"])
        assert unit.sections["data_tiles_bin"].data == b"\xff"

    def test_data_align(self):
        loader = loader_for({"t.bin": b"\x00"})
        unit = Parser(data_loader=loader).parse([".main", "<t.bin align"])
        assert unit.sections["data_t_bin"].align is True

    def test_data_label_is_referenceable(self):
        loader = loader_for({"t.bin": b"\x00"})
        unit = Parser(data_loader=loader).parse([".main", "ld hl, data_t_bin", "<t.bin"])
        assert unit.label_usages == [LabelUsage("data_t_bin", "main", 0)]

    def test_missing_file(self):
        with pytest.raises(DataFileError) as exc_info:
            Parser(data_loader=loader_for({})).parse([".main", "<missing.bin"])
        error = exc_info.value
        assert error.data_filename == "missing.bin"
        assert error.line == 2

    def test_empty_path(self):
        with pytest.raises(DataFileError):
            Parser(data_loader=loader_for({})).parse([".main", "<"])

    def test_duplicate_data_block(self):
        loader = loader_for({"t.bin": b"\x00"})
        with pytest.raises(DuplicateSymbolError):
            Parser(data_loader=loader).parse([".main", "<t.bin", "<t.bin"])

    def test_file_loader_reads_relative_to_base(self, tmp_path):
        (tmp_path / "gfx").mkdir()
        (tmp_path / "gfx" / "tiles.bin").write_bytes(b"\xaa\xbb")
        unit = Parser(data_loader=file_data_loader(tmp_path)).parse(
            [".main", "<gfx/tiles.bin"]
        )
        assert unit.sections["data_gfx_tiles_bin"].data == b"\xaa\xbb"

    def test_file_loader_missing_file_hint(self, tmp_path):
        with pytest.raises(DataFileError) as exc_info:
            Parser(data_loader=file_data_loader(tmp_path)).parse([".main", "<nope.bin"])
        assert str(tmp_path) in exc_info.value.hint

    def test_file_loader_search_path(self, tmp_path):
        loader = file_data_loader(tmp_path)
        assert isinstance(loader, FileDataLoader)
        assert loader.search_path == str(tmp_path)
        assert file_data_loader().search_path is None

    def test_custom_loader_has_no_hint(self):
        with pytest.raises(DataFileError) as exc_info:
            Parser(data_loader=loader_for({})).parse([".main", "<missing.bin"])
        assert exc_info.value.search_path is None
