"""
gbasm - SM83 Assembler Command-Line Interface
=============================================

Assembles a Game Boy source file into a padded ROM image.

Usage Examples
--------------
Basic assembly (writes game.gb):
    $ gbasm game.asm

With output and symbol files:
    $ gbasm game.asm -o build/game.gb -s build/game.sym

Cartridge title and verbose output:
    $ gbasm --title TETRIS -v game.asm

Environment variables GBASM_MIN_SIZE, GBASM_TITLE and GBASM_DATA_DIR set
defaults that the options below override.
"""

from pathlib import Path
from typing import Optional
import logging

import click

from gb_sdk import __version__
from gb_sdk.assembler import Assembler
from gb_sdk.cli.errors import handle_cli_exception
from gb_sdk.config import AssemblerConfig, parse_size


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(message)s",
    )


def _size_option(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return parse_size(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a size (e.g. 32768, 0x8000, $8000)")


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output ROM file (default: input.gb)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "--title",
    help="Cartridge title stored in the header (up to 16 ASCII characters)",
)
@click.option(
    "--min-size",
    callback=_size_option,
    help="Pad the image to at least this many bytes (default: 0x8000)",
)
@click.option(
    "-d", "--data-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory data blocks are loaded from (default: source directory)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="gbasm")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    title: Optional[str],
    min_size: Optional[int],
    data_dir: Optional[Path],
    verbose: bool,
) -> None:
    """
    Assemble SM83 source code into a Game Boy ROM.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    \b
    Examples:
        gbasm game.asm                 # Outputs game.gb
        gbasm game.asm -o out.gb       # Specify output file
        gbasm game.asm -s game.sym     # Also write section addresses
    """
    setup_logging(verbose)

    config = AssemblerConfig.from_env()
    if title is not None:
        config.title = title
    if min_size is not None:
        config.min_size = min_size
    if data_dir is not None:
        config.data_dir = data_dir

    output_file = output if output is not None else input_file.with_suffix(".gb")

    try:
        asm = Assembler(config=config)
        image = asm.assemble_file(input_file)

        asm.write_binary(output_file)
        if verbose:
            click.echo(f"Wrote {max(len(image), config.min_size)} bytes to {output_file}")

        if symbols:
            asm.write_symbols(symbols)
            if verbose:
                click.echo(f"Wrote symbols to {symbols}")

        if verbose:
            click.echo(f"Assembly complete: {len(image)} bytes, "
                       f"{len(asm.get_symbols())} sections")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
