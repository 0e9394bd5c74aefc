"""Codebase question answering over uploaded or downloaded source archives."""

__version__ = "0.1.0"
