"""REPL shell for interactive tree navigation.

This module provides an interactive shell for creating, navigating and
reorganising an in-memory folder tree.
"""

from treefs.repl.shell import PathCompleter, TreeShell

__all__ = ["TreeShell", "PathCompleter"]
