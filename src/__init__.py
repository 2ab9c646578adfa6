"""optxfer - file transfer over a sequence of scannable text records"""

__version__ = "1.0.0"
