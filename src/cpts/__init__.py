"""Composer Package Trust Score."""

__version__ = "0.3.0"
