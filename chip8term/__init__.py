"""A CHIP-8 interpreter that draws to the terminal, with its CPU, display, timers and stack."""

__version__ = "0.1.0"
__all__ = ["__version__"]