"""Structural adjustment and decryption core for OOXML spreadsheet packages."""

__version__ = "0.1.0"
