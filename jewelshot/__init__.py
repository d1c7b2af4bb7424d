"""Jewelshot - AI jewelry photography backend"""

__version__ = "1.0.0"
