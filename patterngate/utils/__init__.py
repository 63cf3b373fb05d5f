"""Utility helpers for file IO and tree walking."""

from .fileio import BinaryContentError, read_text_lines, read_yaml_file, split_lines
from .walker import FileWalk, WalkWarning, glob_matches, walk

__all__ = [
    "BinaryContentError",
    "FileWalk",
    "WalkWarning",
    "glob_matches",
    "read_text_lines",
    "read_yaml_file",
    "split_lines",
    "walk",
]
