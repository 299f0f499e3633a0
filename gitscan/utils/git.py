"""Git operations and utilities.

Thin wrappers around the git CLI. Every function takes the repository work
tree as its first argument and runs git with that directory as cwd.
"""

import os
import subprocess
import logging
from typing import Optional, List, Tuple, Dict

logger = logging.getLogger('gitscan')

HEADS_PREFIX = 'refs/heads/'


class GitCommandError(Exception):
    """Raised when a git invocation fails."""

    def __init__(self, command: List[str], returncode: int, stderr: Optional[str] = None):
        message = "Git command failed"
        if command:
            message = f"Git command failed: {' '.join(command)}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr or ""


class RepositoryOpenError(GitCommandError):
    """Raised when a path cannot be opened as a git repository."""


def _git_env() -> Dict[str, str]:
    env = dict(os.environ)
    # Never block a worker on a credentials prompt
    env['GIT_TERMINAL_PROMPT'] = '0'
    return env


def run_git(
    args: List[str],
    cwd: str,
    check: bool = True,
    timeout: Optional[float] = None
) -> subprocess.CompletedProcess:
    """Run a git command in a repository directory.

    Args:
        args: Arguments passed after 'git'
        cwd: Directory to run git in
        check: Raise GitCommandError on a non-zero exit code
        timeout: Optional timeout in seconds

    Returns:
        Completed process with text stdout/stderr

    Raises:
        GitCommandError: If check is set and git exits non-zero
        subprocess.TimeoutExpired: If the timeout elapses
    """
    cmd = ["git", *args]
    proc = subprocess.run(
        cmd,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        env=_git_env()
    )
    if check and proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, proc.stderr)
    return proc


def open_repository(repo_path: str) -> str:
    """Open a repository and return its common git directory.

    The path must be the top level of a work tree. A broken '.git' makes git
    fall back to an enclosing repository, which is rejected here as well.

    Args:
        repo_path: Path to the repository work tree

    Returns:
        Absolute path of the git directory shared by all work trees

    Raises:
        RepositoryOpenError: If the path is not the root of a usable repository
    """
    try:
        proc = run_git(
            ["rev-parse", "--show-toplevel", "--git-common-dir"],
            cwd=repo_path
        )
    except GitCommandError as e:
        raise RepositoryOpenError(e.command, e.returncode, e.stderr) from e
    except OSError as e:
        raise RepositoryOpenError(["rev-parse"], -1, str(e)) from e

    lines = proc.stdout.splitlines()
    if len(lines) < 2:
        raise RepositoryOpenError(["rev-parse"], proc.returncode, "unexpected rev-parse output")

    toplevel, common_dir = lines[0].strip(), lines[1].strip()
    if os.path.realpath(toplevel) != os.path.realpath(repo_path):
        raise RepositoryOpenError(
            ["rev-parse"], proc.returncode,
            f"{repo_path} resolves to enclosing repository {toplevel}"
        )
    return os.path.normpath(os.path.join(repo_path, common_dir))


def get_head_branch(repo_path: str) -> Optional[str]:
    """Get the branch HEAD points at.

    Args:
        repo_path: Path to the repository

    Returns:
        Short branch name, or None if HEAD is detached
    """
    proc = run_git(["symbolic-ref", "-q", "HEAD"], cwd=repo_path, check=False)
    if proc.returncode != 0:
        return None
    ref = proc.stdout.strip()
    if not ref.startswith(HEADS_PREFIX):
        return None
    return ref[len(HEADS_PREFIX):]


def resolve_commit(repo_path: str, rev: str) -> Optional[str]:
    """Resolve a revision to a commit hash.

    Args:
        repo_path: Path to the repository
        rev: Revision or reference name

    Returns:
        Full commit hash, or None if it does not resolve
    """
    proc = run_git(
        ["rev-parse", "--verify", "-q", f"{rev}^{{commit}}"],
        cwd=repo_path,
        check=False
    )
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def _config_value(repo_path: str, key: str) -> str:
    proc = run_git(["config", "--get", key], cwd=repo_path, check=False)
    if proc.returncode != 0:
        return ""
    return proc.stdout.strip()


def get_tracking_config(repo_path: str, branch: str) -> Optional[Tuple[str, str]]:
    """Read the tracking configuration of a local branch.

    Args:
        repo_path: Path to the repository
        branch: Short name of the local branch

    Returns:
        (remote, merge branch short name), or None if tracking is not configured
    """
    remote = _config_value(repo_path, f"branch.{branch}.remote")
    merge = _config_value(repo_path, f"branch.{branch}.merge")
    if not remote or not merge:
        return None
    if merge.startswith(HEADS_PREFIX):
        merge = merge[len(HEADS_PREFIX):]
    return remote, merge


def fetch_remote(repo_path: str, remote: str, timeout: Optional[float] = None) -> bool:
    """Fetch a remote including all tags, without forcing ref updates.

    Args:
        repo_path: Path to the repository
        remote: Remote name
        timeout: Optional timeout in seconds

    Returns:
        True if successful, False otherwise
    """
    try:
        run_git(["fetch", "--tags", remote], cwd=repo_path, timeout=timeout)
        return True
    except GitCommandError as e:
        logger.debug(f"Fetch of {remote} failed in {repo_path}: {e.stderr.strip()}")
    except subprocess.TimeoutExpired:
        logger.debug(f"Fetch of {remote} timed out after {timeout}s in {repo_path}")
    return False


def has_uncommitted_changes(repo_path: str) -> bool:
    """Check if the work tree has staged, unstaged or untracked changes.

    Args:
        repo_path: Path to the repository

    Returns:
        True if there are changes, False otherwise (also when status fails)
    """
    proc = run_git(
        ["status", "--porcelain", "--untracked-files=normal"],
        cwd=repo_path,
        check=False
    )
    if proc.returncode != 0:
        logger.debug(f"git status failed in {repo_path}: {proc.stderr.strip()}")
        return False
    return bool(proc.stdout.strip())


def has_stash(git_dir: str) -> bool:
    """Check for stash entries by probing the git directory on disk.

    Args:
        git_dir: Path to the (common) git directory

    Returns:
        True if a non-empty stash reflog or a refs/stash file exists
    """
    reflog = os.path.join(git_dir, 'logs', 'refs', 'stash')
    if os.path.isfile(reflog) and os.path.getsize(reflog) > 0:
        return True
    return os.path.isfile(os.path.join(git_dir, 'refs', 'stash'))


class CommitGraph:
    """Read commit parent links through a single 'git cat-file --batch' process.

    Example:
        with CommitGraph(repo_path) as graph:
            parents = graph.parents(commit_hash)
    """

    def __init__(self, repo_path: str):
        self.repo_path = repo_path
        self._proc: Optional[subprocess.Popen] = None

    def __enter__(self) -> 'CommitGraph':
        self._proc = subprocess.Popen(
            ["git", "cat-file", "--batch"],
            cwd=self.repo_path,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            env=_git_env()
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Terminate the batch process."""
        if self._proc is None:
            return
        try:
            self._proc.stdin.close()
        except OSError:
            pass
        try:
            self._proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._proc.kill()
            self._proc.wait()
        self._proc.stdout.close()
        self._proc = None

    def parents(self, commit_hash: str) -> List[str]:
        """Get the parent hashes of a commit.

        Args:
            commit_hash: Full commit hash

        Returns:
            Parent hashes in order; empty for root commits and missing objects
        """
        if self._proc is None:
            raise RuntimeError("CommitGraph not entered as context manager")

        self._proc.stdin.write(commit_hash.encode('ascii') + b"\n")
        self._proc.stdin.flush()

        header = self._proc.stdout.readline()
        if not header:
            raise GitCommandError(["cat-file", "--batch"], -1, "batch process exited")
        fields = header.split()
        # "<hash> missing" or "<hash> <type> <size>"
        if len(fields) != 3:
            return []

        size = int(fields[2])
        body = self._read_exact(size + 1)[:size]
        if fields[1] != b"commit":
            return []

        parents = []
        for line in body.split(b"\n"):
            if not line:
                break
            if line.startswith(b"parent "):
                parents.append(line[len(b"parent "):].decode('ascii'))
        return parents

    def _read_exact(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._proc.stdout.read(remaining)
            if not chunk:
                raise GitCommandError(["cat-file", "--batch"], -1, "short read from batch process")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)
