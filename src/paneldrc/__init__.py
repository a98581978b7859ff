"""paneldrc: design rule checks for electrical panel layouts."""

__version__ = "0.4.0"
