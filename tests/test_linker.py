# =============================================================================
# test_linker.py - Linker Unit Tests
# =============================================================================
# Tests for ROM layout and label patching.
#
# Test coverage includes:
#   - Fixed layout: vector slots, header at $0100, entry at $0150
#   - Declaration-order placement and $100 alignment
#   - Data blocks ahead of section code
#   - jr displacement and absolute address patching
#   - Link errors: missing entry, vector overflow, branch range
#   - Global checksum
# =============================================================================

import pytest

from gb_sdk.assembler.linker import Linker, link
from gb_sdk.assembler.parser import Parser, parse_source
from gb_sdk.errors import BranchRangeError, LinkError
from gb_sdk.rom import build_header, verify_global_checksum


def link_source(source: str, **kwargs):
    """Parse and link source text."""
    return link(parse_source(source), **kwargs)


def nops(count: int) -> str:
    return "    nop\n" * count


# =============================================================================
# Layout Tests
# =============================================================================

class TestLayout:
    """Test the fixed image layout."""

    def test_minimal_image(self):
        result = link_source(".main\n    ld a, $03\n    di\n    halt\n")
        image = result.image
        assert len(image) == 0x155
        assert image[:0x100] == bytes(0x100)
        assert image[0x150:0x155] == bytes([0x3E, 0x03, 0xF3, 0x76, 0x00])
        assert result.symbols == {"main": 0x150}

    def test_header_at_0100(self):
        image = link_source(".main\n    nop\n").image
        header = build_header()
        assert image[0x100:0x14E] == header[:0x4E]
        assert image[0x14D] == 0xE7

    def test_title(self):
        image = link_source(".main\n    nop\n", title="DEMO").image
        assert image[0x134:0x138] == b"DEMO"
        assert image[0x100:0x14E] == build_header("DEMO")[:0x4E]

    def test_invalid_title(self):
        with pytest.raises(LinkError, match="title"):
            link_source(".main\n    nop\n", title="X" * 17)

    def test_main_placed_first_regardless_of_order(self):
        result = link_source(".helper\n    ret\n.main\n    halt\n")
        assert result.symbols["main"] == 0x150
        assert result.symbols["helper"] == 0x152
        assert result.image[0x152] == 0xC9

    def test_sections_in_declaration_order(self):
        source = ".main\n    nop\n.b_sec\n    nop\n    nop\n.a_sec\n    ret\n"
        result = link_source(source)
        assert result.symbols == {"main": 0x150, "b_sec": 0x151, "a_sec": 0x153}

    def test_custom_entry_label(self):
        result = link_source(".start\n    halt\n", entry_label="start")
        assert result.symbols["start"] == 0x150

    def test_missing_main(self):
        with pytest.raises(LinkError, match="no 'main' section"):
            link_source(".start\n    nop\n")

    def test_deterministic(self):
        source = ".main\n    call func\n    halt\n.func\n    ret\n"
        assert link_source(source).image == link_source(source).image


# =============================================================================
# Vector Tests
# =============================================================================

class TestVectors:
    """Test restart and interrupt vector placement."""

    def test_interrupt_vector(self):
        result = link_source(".main\n    halt\n.int_vblank\n    reti\n")
        assert result.image[0x40] == 0xD9
        assert result.symbols["int_vblank"] == 0x40
        # vector sections are not appended after main
        assert len(result.image) == 0x152

    def test_rst_vector(self):
        result = link_source(".main\n    rst $38\n.rst_38\n    ret\n")
        assert result.image[0x38] == 0xC9
        assert result.image[0x150] == 0xFF

    def test_all_slots(self):
        labels = [
            "rst_00", "rst_08", "rst_10", "rst_18", "rst_20", "rst_28",
            "rst_30", "rst_38", "int_vblank", "int_lcdc", "int_timer",
            "int_serial", "int_keys",
        ]
        source = ".main\n    halt\n" + "".join(f".{label}\n    reti\n" for label in labels)
        image = link_source(source).image
        for address in range(0, 0x68, 8):
            assert image[address] == 0xD9

    def test_vector_fills_slot(self):
        image = link_source(".main\n    halt\n.rst_00\n" + nops(7) + "    ret\n").image
        assert image[0x07] == 0xC9

    def test_vector_overflow(self):
        with pytest.raises(LinkError, match="rst_08"):
            link_source(".main\n    halt\n.rst_08\n" + nops(9))

    def test_vector_label_usage_patched(self):
        source = ".main\n    halt\n.int_timer\n    jp handler\n.handler\n    reti\n"
        result = link_source(source)
        assert result.symbols["handler"] == 0x152
        assert result.image[0x50:0x53] == bytes([0xC3, 0x52, 0x01])

    def test_jump_to_vector(self):
        source = ".main\n    call rst_10\n.rst_10\n    ret\n"
        image = link_source(source).image
        assert image[0x150:0x153] == bytes([0xCD, 0x10, 0x00])


# =============================================================================
# Alignment Tests
# =============================================================================

class TestAlignment:
    """Test 'align' sections."""

    def test_aligned_section(self):
        result = link_source(".main\n    nop\n.table align\n    ret\n")
        image = result.image
        assert result.symbols["table"] == 0x200
        assert image[0x151:0x200] == bytes(0x200 - 0x151)
        assert image[0x200] == 0xC9
        assert len(image) == 0x201

    def test_already_aligned(self):
        """No padding is added when the image already ends on $100."""
        source = ".main\n" + nops(0xB0) + ".table align\n    ret\n"
        result = link_source(source)
        assert result.symbols["table"] == 0x200
        assert len(result.image) == 0x201

    def test_main_is_not_moved(self):
        result = link_source(".main align\n    nop\n")
        assert result.symbols["main"] == 0x150


# =============================================================================
# Data Block Tests
# =============================================================================

class TestDataBlocks:
    """Test data sections."""

    def test_data_precedes_code(self):
        files = {"tiles.bin": b"\xaa\xbb"}
        source = [".main", "ld hl, data_tiles_bin", "halt", "<tiles.bin", "ret"]
        unit = Parser(data_loader=files.__getitem__).parse(source)
        result = Linker().link(unit)
        image = result.image
        assert result.symbols["data_tiles_bin"] == 0x155
        assert image[0x150:0x153] == bytes([0x21, 0x55, 0x01])
        assert image[0x155:0x158] == b"\xaa\xbb\xc9"

    def test_jump_into_data_section_code(self):
        files = {"t.bin": b"\x01\x02\x03"}
        source = [".main", "jr main", "<t.bin", "jr data_t_bin"]
        unit = Parser(data_loader=files.__getitem__).parse(source)
        image = Linker().link(unit).image
        # jr at $0155 (after 3 data bytes) back to $0152: -5
        assert image[0x155:0x157] == bytes([0x18, 0xFB])

    def test_aligned_data(self):
        files = {"t.bin": b"\x42"}
        unit = Parser(data_loader=files.__getitem__).parse([".main", "nop", "<t.bin align"])
        result = Linker().link(unit)
        assert result.symbols["data_t_bin"] == 0x200
        assert result.image[0x200] == 0x42


# =============================================================================
# Patching Tests
# =============================================================================

class TestPatching:
    """Test label reference resolution."""

    def test_jr_backward(self):
        image = link_source(".main\n    nop\n.loop\n    jr loop\n").image
        # jr at $0151, target $0151: $0151 - ($0151 + 2) = -2
        assert image[0x151:0x153] == bytes([0x18, 0xFE])

    def test_jr_forward_conditional(self):
        image = link_source(".main\n    jr nz, done\n    nop\n.done\n    ret\n").image
        assert image[0x150:0x152] == bytes([0x20, 0x01])

    def test_jr_to_self_section(self):
        image = link_source(".main\n    jr main\n").image
        assert image[0x150:0x152] == bytes([0x18, 0xFE])

    def test_call_absolute(self):
        image = link_source(".main\n    call func\n    halt\n.func\n    ret\n").image
        assert image[0x150:0x153] == bytes([0xCD, 0x55, 0x01])

    def test_jp_conditional(self):
        image = link_source(".main\n    jp z, func\n.func\n    ret\n").image
        assert image[0x150:0x153] == bytes([0xCA, 0x53, 0x01])

    def test_ld_register_pair(self):
        image = link_source(".main\n    ld hl, table\n.table\n    nop\n").image
        assert image[0x150:0x153] == bytes([0x21, 0x53, 0x01])

    def test_ld_address(self):
        source = ".main\n    ld a, var\n    ld var, a\n.var\n    nop\n"
        image = link_source(source).image
        assert image[0x150:0x153] == bytes([0xFA, 0x56, 0x01])
        assert image[0x153:0x156] == bytes([0xEA, 0x56, 0x01])

    def test_usage_in_later_section(self):
        source = ".main\n    nop\n.one\n    nop\n    call two\n.two\n    ret\n"
        image = link_source(source).image
        # one at $0151, call at $0152, two at $0155
        assert image[0x152:0x155] == bytes([0xCD, 0x55, 0x01])

    def test_jr_forward_limit(self):
        source = ".main\n    jr far\n.pad\n" + nops(127) + ".far\n    ret\n"
        image = link_source(source).image
        assert image[0x151] == 0x7F

    def test_jr_forward_out_of_range(self):
        source = ".main\n    jr far\n.pad\n" + nops(128) + ".far\n    ret\n"
        with pytest.raises(BranchRangeError) as exc_info:
            link_source(source)
        error = exc_info.value
        assert error.offset == 128
        assert error.target == "far"
        assert error.line == 2

    def test_jr_backward_limit(self):
        source = ".main\n" + nops(126) + "    jr main\n"
        image = link_source(source).image
        assert image[0x150 + 127] == 0x80

    def test_jr_backward_out_of_range(self):
        source = ".main\n" + nops(127) + "    jr main\n"
        with pytest.raises(BranchRangeError) as exc_info:
            link_source(source)
        assert exc_info.value.offset == -129


# =============================================================================
# Checksum Tests
# =============================================================================

class TestChecksum:
    """Test the global checksum of linked images."""

    def test_checksum_matches(self):
        image = link_source(".main\n    ld a, $03\n    di\n    halt\n").image
        stored = (image[0x14E] << 8) | image[0x14F]
        assert stored == (sum(image) - image[0x14E] - image[0x14F]) & 0xFFFF
        assert verify_global_checksum(image)

    def test_checksum_covers_vectors(self):
        plain = link_source(".main\n    halt\n").image
        with_vector = link_source(".main\n    halt\n.int_vblank\n    reti\n").image
        assert plain[0x14E:0x150] != with_vector[0x14E:0x150]
        assert verify_global_checksum(with_vector)

    def test_checksum_with_title(self):
        assert verify_global_checksum(link_source(".main\n    nop\n", title="GAME").image)
