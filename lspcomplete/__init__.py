"""Completion coordination for editor-integrated language server clients."""

__version__ = "0.1.0"
