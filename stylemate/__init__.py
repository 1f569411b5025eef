"""Stylemate booking and cart core"""

__version__ = "1.0.0"
