"""LegacyParity - differential testing for AI-assisted legacy code modernization"""

__version__ = "1.0.0"
