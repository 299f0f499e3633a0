"""Repository scanner: evaluate discovered repositories on a worker pool."""

import sys
import time
import logging
import threading
import multiprocessing
from abc import ABC, abstractmethod
from typing import List, Optional, Callable, Iterator, TextIO, TYPE_CHECKING
from concurrent.futures import ThreadPoolExecutor, as_completed

from .discovery import discover_repos
from .evaluator import evaluate_repo, MAX_ANCESTORS
from .types import OutputMode, RepositoryStatus
from ..utils.output import format_stream_line

if TYPE_CHECKING:
    from ..config import ScanConfig

logger = logging.getLogger('gitscan')

MIN_WORKERS = 2


def default_worker_count() -> int:
    """Number of workers used when none is configured: CPU count, at least 2."""
    try:
        cpus = multiprocessing.cpu_count()
    except NotImplementedError:
        cpus = 1
    return max(MIN_WORKERS, cpus)


class ResultSink(ABC):
    """Consumer of scan results.

    accept() may be called from any thread; implementations serialize
    their own side effects.
    """

    @abstractmethod
    def accept(self, status: RepositoryStatus) -> None:
        """Receive one result."""
        pass

    def finish(self) -> None:
        """Called once after the last result."""
        pass


class StreamingSink(ResultSink):
    """Write each result to a stream as soon as it arrives."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        formatter: Callable[[RepositoryStatus], str] = format_stream_line
    ):
        """Initialize streaming sink.

        Args:
            stream: Output stream (default: sys.stdout at write time)
            formatter: Renders one result as a single line
        """
        self.stream = stream
        self.formatter = formatter
        self.count = 0
        self._lock = threading.Lock()

    def accept(self, status: RepositoryStatus) -> None:
        line = self.formatter(status)
        # One lock around write+flush so lines never interleave
        with self._lock:
            out = self.stream or sys.stdout
            out.write(line + "\n")
            out.flush()
            self.count += 1


class AggregateSink(ResultSink):
    """Collect every result and sort by path once the scan is done."""

    def __init__(self):
        self._results: List[RepositoryStatus] = []
        self._lock = threading.Lock()

    def accept(self, status: RepositoryStatus) -> None:
        with self._lock:
            self._results.append(status)

    def finish(self) -> None:
        with self._lock:
            self._results.sort(key=lambda s: s.path)

    @property
    def results(self) -> List[RepositoryStatus]:
        """Collected results, sorted by path after finish()."""
        with self._lock:
            return list(self._results)


class RepoScanner:
    """Scanner for evaluating local repositories in parallel."""

    def __init__(
        self,
        max_workers: Optional[int] = None,
        fetch: bool = True,
        fetch_timeout: Optional[float] = None,
        max_ancestors: int = MAX_ANCESTORS,
        on_skip: Optional[Callable[[str, str], None]] = None
    ):
        """Initialize repository scanner.

        Args:
            max_workers: Number of parallel workers (None = CPU count, minimum 2)
            fetch: Fetch each repository's upstream remote before comparing
            fetch_timeout: Timeout in seconds for each fetch (None = no timeout)
            max_ancestors: Cap on commits visited per side for ahead/behind
            on_skip: Optional callback receiving (repo_path, reason) for every
                repository left out of the results (called from worker threads)
        """
        self.max_workers = max_workers if max_workers is not None else default_worker_count()
        self.fetch = fetch
        self.fetch_timeout = fetch_timeout
        self.max_ancestors = max_ancestors
        self.on_skip = on_skip

    @classmethod
    def from_config(
        cls,
        config: 'ScanConfig',
        on_skip: Optional[Callable[[str, str], None]] = None
    ) -> 'RepoScanner':
        """Create a scanner from a ScanConfig.

        Args:
            config: ScanConfig instance
            on_skip: Optional skip callback

        Returns:
            RepoScanner instance
        """
        return cls(
            max_workers=config.max_workers,
            fetch=config.fetch,
            fetch_timeout=config.fetch_timeout,
            on_skip=on_skip
        )

    def discover(self, root: str) -> List[str]:
        """Discover repositories under root.

        Raises:
            OSError: If the tree cannot be walked
        """
        return discover_repos(root)

    def iter_statuses(self, root: str, repos: List[str]) -> Iterator[RepositoryStatus]:
        """Evaluate repositories in parallel, yielding results as they complete.

        Args:
            root: Scan root, used for relative paths
            repos: Repository roots to evaluate

        Yields:
            RepositoryStatus for every repository that could be opened,
            in completion order
        """
        if not repos:
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_repo = {
                executor.submit(self._process_repo, root, repo): repo
                for repo in repos
            }

            for future in as_completed(future_to_repo):
                status = future.result()
                if status is not None:
                    yield status

    def run(self, root: str, sink: ResultSink) -> ResultSink:
        """Discover and evaluate every repository under root into a sink.

        Args:
            root: Absolute scan root
            sink: Consumer for results

        Returns:
            The sink, after finish() has been called

        Raises:
            OSError: If the tree cannot be walked
        """
        start = time.monotonic()
        repos = self.discover(root)
        logger.info(f"Found {len(repos)} repositories under {root}")
        logger.info(f"Using parallel processing with {self.max_workers} workers")

        evaluated = 0
        for status in self.iter_statuses(root, repos):
            sink.accept(status)
            evaluated += 1
        sink.finish()

        elapsed = time.monotonic() - start
        logger.info(
            f"Scan complete: {evaluated} evaluated, {len(repos) - evaluated} skipped "
            f"in {elapsed:.2f}s"
        )
        return sink

    def scan(
        self,
        root: str,
        mode: OutputMode = OutputMode.AGGREGATE,
        stream: Optional[TextIO] = None
    ) -> Optional[List[RepositoryStatus]]:
        """Scan root in the requested output mode.

        Args:
            root: Absolute scan root
            mode: STREAMING writes lines to stream as results arrive;
                AGGREGATE returns all results sorted by path
            stream: Output stream for streaming mode

        Returns:
            Sorted results in aggregate mode, None in streaming mode
        """
        if mode == OutputMode.STREAMING:
            self.run(root, StreamingSink(stream))
            return None
        sink = self.run(root, AggregateSink())
        return sink.results

    def _process_repo(self, root: str, repo_path: str) -> Optional[RepositoryStatus]:
        """Evaluate a single repository, isolating any failure.

        Args:
            root: Scan root
            repo_path: Repository root

        Returns:
            RepositoryStatus, or None if the repository is skipped
        """
        try:
            status = evaluate_repo(
                root,
                repo_path,
                fetch=self.fetch,
                fetch_timeout=self.fetch_timeout,
                max_ancestors=self.max_ancestors
            )
        except Exception as e:
            logger.warning(f"Unexpected error evaluating {repo_path}: {e}")
            self._skip(repo_path, f"unexpected error: {e}")
            return None

        if status is None:
            self._skip(repo_path, "cannot be opened as a git repository")
        return status

    def _skip(self, repo_path: str, reason: str) -> None:
        if self.on_skip:
            self.on_skip(repo_path, reason)
