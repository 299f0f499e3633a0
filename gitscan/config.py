"""Configuration management for gitscan."""

import os
from typing import Optional
from dataclasses import dataclass

from .core.types import OutputMode

DEFAULT_FETCH_TIMEOUT = 30.0

_TRUTHY = {'1', 'true', 'yes', 'on'}


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').strip().lower() in _TRUTHY


def _parse_workers(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        workers = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Worker count must be an integer, got: {value!r}")
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got: {workers}")
    return workers


def _parse_timeout(value) -> Optional[float]:
    if value is None or value == '':
        return DEFAULT_FETCH_TIMEOUT
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Fetch timeout must be a number of seconds, got: {value!r}")
    if timeout < 0:
        raise ValueError(f"Fetch timeout cannot be negative, got: {timeout}")
    # 0 disables the timeout
    return timeout or None


@dataclass
class ScanConfig:
    """Configuration for a repository scan.

    Merges environment variables with CLI arguments.
    CLI arguments take precedence over environment variables.
    """

    root: str = '.'
    fetch: bool = True
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT
    max_workers: Optional[int] = None
    mode: OutputMode = OutputMode.STREAMING

    @classmethod
    def from_env_and_args(
        cls,
        path: Optional[str] = None,
        no_fetch: bool = False,
        fetch_timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
        mode: OutputMode = OutputMode.STREAMING
    ) -> 'ScanConfig':
        """Create config from environment variables and CLI arguments.

        CLI arguments override environment variables.

        Args:
            path: Root path to scan (overrides GITSCAN_PATH)
            no_fetch: Skip fetching (or set GITSCAN_NO_FETCH)
            fetch_timeout: Fetch timeout in seconds, 0 for none (overrides GITSCAN_FETCH_TIMEOUT)
            max_workers: Parallel workers (overrides GITSCAN_WORKERS)
            mode: Output mode

        Returns:
            ScanConfig instance

        Raises:
            ValueError: If a value is malformed
        """
        final_path = path or os.getenv('GITSCAN_PATH') or '.'
        final_fetch = not (no_fetch or _env_flag('GITSCAN_NO_FETCH'))

        timeout_value = fetch_timeout
        if timeout_value is None:
            timeout_value = os.getenv('GITSCAN_FETCH_TIMEOUT')

        workers_value = max_workers
        if workers_value is None:
            workers_value = os.getenv('GITSCAN_WORKERS')

        return cls(
            root=final_path,
            fetch=final_fetch,
            fetch_timeout=_parse_timeout(timeout_value),
            max_workers=_parse_workers(workers_value),
            mode=mode
        )

    def resolve_root(self) -> str:
        """Resolve the scan root to an absolute directory path.

        Returns:
            Absolute path of the root

        Raises:
            FileNotFoundError: If the root does not exist
            NotADirectoryError: If the root is not a directory
        """
        abs_root = os.path.abspath(os.path.expanduser(self.root))
        if not os.path.exists(abs_root):
            raise FileNotFoundError(f"Path does not exist: {abs_root}")
        if not os.path.isdir(abs_root):
            raise NotADirectoryError(f"Path is not a directory: {abs_root}")
        return abs_root
