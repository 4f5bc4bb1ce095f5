"""
Game Boy SDK Command-Line Interface
===================================

- **gbasm**: SM83 assembler and ROM linker

Implemented as a Click application with comprehensive help and error
reporting.
"""

__all__ = ["gbasm"]
