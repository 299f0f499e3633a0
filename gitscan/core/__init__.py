"""Core package for gitscan."""

from .types import (
    DETACHED,
    SyncState,
    OutputMode,
    RepositoryStatus,
)

from .logger import setup_logging

__all__ = [
    # Types
    'DETACHED',
    'SyncState',
    'OutputMode',
    'RepositoryStatus',
    'setup_logging',
]
