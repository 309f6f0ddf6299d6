"""
Entry point for running mathshield as a module.

Usage:
    python -m mathshield --help
    python -m mathshield scan --text 'Einstein: $E=mc^2$'
    python -m mathshield render --input notes.md
"""
from .cli import app


if __name__ == "__main__":
    app()
