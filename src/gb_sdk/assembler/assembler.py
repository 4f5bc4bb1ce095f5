"""
SM83 Assembler - Main Interface
===============================

This module provides the Assembler class, the primary interface for
turning Game Boy assembly source into a ROM image. It coordinates the
parser and the linker, and writes the padded image and symbol map.

Example Usage
-------------
>>> from gb_sdk.assembler import Assembler
>>>
>>> asm = Assembler()
>>> asm.assemble_string('''
... .main
...     ld a, $03
...     di
...     halt
... ''')
>>>
>>> rom = asm.get_image()
>>> asm.write_binary("game.gb")

Command-Line Usage
------------------
    $ gbasm game.asm -o game.gb -s game.sym
"""

from pathlib import Path
from typing import Iterable, Optional

from gb_sdk.assembler.linker import LinkResult, Linker
from gb_sdk.assembler.parser import DataLoader, Parser, file_data_loader
from gb_sdk.config import AssemblerConfig
from gb_sdk.rom import pad_image


class Assembler:
    """
    Main SM83 assembler class.

    Each assemble_* call replaces the previous result; get_image() and the
    write_* methods operate on the most recent one.

    Attributes:
        config: Build settings (entry label, padding, title, data directory)
        verbose: If True, print progress messages
    """

    def __init__(
        self,
        config: Optional[AssemblerConfig] = None,
        verbose: bool = False,
        data_loader: Optional[DataLoader] = None,
    ):
        """
        Initialize the assembler.

        Args:
            config: Build settings; defaults to AssemblerConfig()
            verbose: Enable verbose output
            data_loader: Callable returning the bytes of a data block path.
                         Overrides the file loader built from config.data_dir.
        """
        self.config = config or AssemblerConfig()
        self._verbose = verbose
        self._data_loader = data_loader
        self._result: Optional[LinkResult] = None

    # =========================================================================
    # Assembly
    # =========================================================================

    def assemble_lines(
        self,
        lines: Iterable[str],
        filename: str = "<input>",
        base_dir: Optional[Path] = None,
    ) -> bytes:
        """
        Assemble source given as lines.

        Args:
            lines: Source lines
            filename: Virtual filename for error messages
            base_dir: Directory data blocks are resolved against when no
                      data directory is configured

        Returns:
            The linked, unpadded ROM image

        Raises:
            AssemblerError: If parsing, encoding or linking fails
        """
        self._result = None
        loader = self._data_loader or file_data_loader(self.config.data_dir or base_dir)

        unit = Parser(filename, data_loader=loader).parse(lines)

        if self._verbose:
            print(f"Parsed {len(unit.sections)} sections, "
                  f"{len(unit.label_usages)} label references")

        linker = Linker(entry_label=self.config.entry_label, title=self.config.title)
        self._result = linker.link(unit)

        if self._verbose:
            print(f"Linked {len(self._result.image)} bytes")

        return self._result.image

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The linked, unpadded ROM image

        Raises:
            AssemblerError: If assembly fails
        """
        if self._verbose:
            print("Assembling from string...")
        return self.assemble_lines(source.splitlines(), filename)

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Data blocks are resolved against the source file's directory unless
        a data directory is configured.

        Args:
            filepath: Path to assembly source file

        Returns:
            The linked, unpadded ROM image

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)

        if self._verbose:
            print(f"Assembling {filepath}...")

        source = filepath.read_text()
        return self.assemble_lines(source.splitlines(), str(filepath), filepath.parent)

    # =========================================================================
    # Output Methods
    # =========================================================================

    def _require_result(self) -> LinkResult:
        if self._result is None:
            raise RuntimeError("nothing has been assembled yet")
        return self._result

    def get_image(self) -> bytes:
        """Get the unpadded image from the last assembly."""
        return self._require_result().image

    def get_symbols(self) -> dict[str, int]:
        """Get section label -> address from the last assembly."""
        return dict(self._require_result().symbols)

    def get_symbol_map(self) -> str:
        """
        Format the symbol table, one 'label $ADDR' line per section in
        address order.
        """
        symbols = self._require_result().symbols
        ordered = sorted(symbols.items(), key=lambda item: (item[1], item[0]))
        width = max((len(name) for name in symbols), default=0)
        return "".join(f"{name:<{width}} ${address:04X}\n" for name, address in ordered)

    def write_binary(self, filepath: str | Path) -> None:
        """
        Write the ROM image, zero-padded to config.min_size.

        Args:
            filepath: Output file path
        """
        image = pad_image(self.get_image(), self.config.min_size)
        Path(filepath).write_bytes(image)

        if self._verbose:
            print(f"Wrote {len(image)} bytes to {filepath}")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Args:
            filepath: Output file path
        """
        Path(filepath).write_text(self.get_symbol_map())

        if self._verbose:
            print(f"Wrote symbols to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>") -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors

    Returns:
        The linked, unpadded ROM image

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble_string(source, filename)


def assemble_file(filepath: str | Path) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file

    Returns:
        The linked, unpadded ROM image

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble_file(filepath)
