"""
Assembler Configuration
=======================

Build settings shared by the Assembler facade and the gbasm command.
Configuration can come from:
- Default values (defined here)
- Environment variables (AssemblerConfig.from_env)
- Command-line options, which override both
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from gb_sdk.rom import MIN_ROM_SIZE


@dataclass
class AssemblerConfig:
    """
    Settings for one build.

    Attributes:
        entry_label: Section placed at $0150 (default: "main")
        min_size: Written images are zero-padded to this size (default: $8000)
        title: Cartridge title stored in the header (default: none)
        data_dir: Directory data blocks are resolved against; defaults to
                  the source file's directory, or the current directory
                  for string input
    """
    entry_label: str = "main"
    min_size: int = MIN_ROM_SIZE
    title: Optional[str] = None
    data_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """
        Create AssemblerConfig from environment variables.

        Environment variables (all optional):
            GBASM_MIN_SIZE: Minimum image size (decimal, or hex with 0x/$)
            GBASM_TITLE: Cartridge title
            GBASM_DATA_DIR: Data block directory

        Returns:
            AssemblerConfig with values from environment variables
        """
        config = cls()

        if min_size := os.environ.get("GBASM_MIN_SIZE"):
            try:
                config.min_size = parse_size(min_size)
            except ValueError:
                pass  # Ignore invalid values

        if title := os.environ.get("GBASM_TITLE"):
            config.title = title

        if data_dir := os.environ.get("GBASM_DATA_DIR"):
            config.data_dir = Path(data_dir)

        return config


def parse_size(text: str) -> int:
    """
    Parse a size given as decimal, 0x-hex or $-hex.

    Raises:
        ValueError: If the text is not a non-negative integer
    """
    text = text.strip().lower()
    if text.startswith("$"):
        value = int(text[1:], 16)
    else:
        value = int(text, 0)
    if value < 0:
        raise ValueError(f"size must not be negative: {text}")
    return value
