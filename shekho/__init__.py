"""Shekho - Learn Bengali through flashcards and short conversations."""

__version__ = "0.1.0"
