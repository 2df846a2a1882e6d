"""Command line interface for colloquy."""
