"""Motion controller pose fusion."""

__version__ = "0.1.0"
