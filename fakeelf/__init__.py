"""
fakeelf — Shebang Script to Decoy-ELF Wrapper
=============================================
Prefixes a shebang script with ELF magic bytes so it reads as a binary
to byte-level inspection while still running through its interpreter.
"""

__version__ = "1.0.0"
__author__ = "fakeelf contributors"
__license__ = "MIT"
__description__ = "Wrap shebang scripts in a decoy ELF header"
