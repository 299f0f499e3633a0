"""Utilities package for gitscan."""

from .git import (
    GitCommandError,
    RepositoryOpenError,
    CommitGraph,
)
from .output import (
    format_stream_line,
    format_json,
    print_table,
)

__all__ = [
    'GitCommandError',
    'RepositoryOpenError',
    'CommitGraph',
    'format_stream_line',
    'format_json',
    'print_table',
]
