"""Repository evaluation: branch, upstream, dirtiness and sync state."""

import logging
from collections import deque
from typing import Optional, Set, Tuple, Callable, Iterable

from .discovery import relative_path
from .types import DETACHED, RepositoryStatus, SyncState
from ..utils.git import (
    CommitGraph,
    RepositoryOpenError,
    fetch_remote,
    get_head_branch,
    get_tracking_config,
    has_stash,
    has_uncommitted_changes,
    open_repository,
    resolve_commit,
)

logger = logging.getLogger('gitscan')

# Upper bound on commits visited per side when counting ahead/behind
MAX_ANCESTORS = 2000


def collect_ancestors(
    tip: str,
    parents: Callable[[str], Iterable[str]],
    limit: int = MAX_ANCESTORS
) -> Set[str]:
    """Breadth-first walk of parent links starting at a commit.

    Args:
        tip: Commit hash to start from (included in the result)
        parents: Callable returning the parent hashes of a commit
        limit: Maximum number of commits to collect

    Returns:
        Set of at most `limit` commit hashes reachable from tip
    """
    seen: Set[str] = set()
    queue = deque([tip])
    while queue and len(seen) < limit:
        commit = queue.popleft()
        if commit in seen:
            continue
        seen.add(commit)
        queue.extend(parents(commit))
    return seen


def count_ahead_behind(
    local_hash: str,
    remote_hash: str,
    parents: Callable[[str], Iterable[str]],
    limit: int = MAX_ANCESTORS
) -> Tuple[int, int]:
    """Approximate how many commits each side has that the other lacks.

    Both ancestor sets are capped at `limit`, so on deep histories the counts
    are an approximation and never exceed the cap.

    Args:
        local_hash: Local branch tip
        remote_hash: Remote-tracking branch tip
        parents: Callable returning the parent hashes of a commit
        limit: Maximum commits visited per side

    Returns:
        (ahead, behind), both >= 0
    """
    local_anc = collect_ancestors(local_hash, parents, limit)
    remote_anc = collect_ancestors(remote_hash, parents, limit)

    ahead = len(local_anc - remote_anc)
    behind = len(remote_anc - local_anc)

    # A tip found in the other side's history is not counted against it
    if local_hash in remote_anc:
        ahead -= 1
    if remote_hash in local_anc:
        behind -= 1

    return max(ahead, 0), max(behind, 0)


def classify_state(
    branch: str,
    upstream: str,
    ahead: int,
    behind: int,
    same_tip: bool
) -> SyncState:
    """Derive the sync state from the evaluated fields.

    Args:
        branch: Branch short name or DETACHED
        upstream: 'remote/branch' or empty
        ahead: Commits only on the local side
        behind: Commits only on the upstream side
        same_tip: Whether local and upstream tips are the same commit

    Returns:
        Sync state
    """
    if not upstream:
        if branch == DETACHED:
            return SyncState.DETACHED
        return SyncState.NO_UPSTREAM
    if same_tip:
        return SyncState.UP_TO_DATE
    if ahead > 0 and behind == 0:
        return SyncState.AHEAD
    if behind > 0 and ahead == 0:
        return SyncState.BEHIND
    # Both sides have unique commits, or the traversal cap hid the difference
    return SyncState.DIVERGED


def evaluate_repo(
    scan_root: str,
    repo_path: str,
    fetch: bool = True,
    fetch_timeout: Optional[float] = None,
    max_ancestors: int = MAX_ANCESTORS
) -> Optional[RepositoryStatus]:
    """Evaluate the sync status of one repository.

    Args:
        scan_root: Root directory of the scan, used for the relative path
        repo_path: Repository root
        fetch: Fetch the upstream remote before comparing
        fetch_timeout: Timeout in seconds for the fetch (None = no timeout)
        max_ancestors: Cap on commits visited per side for ahead/behind

    Returns:
        RepositoryStatus, or None if the path cannot be opened as a repository
    """
    try:
        git_dir = open_repository(repo_path)
    except RepositoryOpenError as e:
        logger.debug(f"Skipping {repo_path}: {e.stderr.strip() or e}")
        return None

    path = relative_path(scan_root, repo_path)

    branch = get_head_branch(repo_path)
    local_hash = resolve_commit(repo_path, "HEAD")
    if branch is None or local_hash is None:
        # Detached, or a branch without any commit yet
        branch = DETACHED

    # Determine upstream (tracking) reference
    upstream = ""
    tracking = None
    if branch != DETACHED:
        tracking = get_tracking_config(repo_path, branch)
        if tracking:
            upstream = f"{tracking[0]}/{tracking[1]}"

    if fetch and tracking:
        fetch_remote(repo_path, tracking[0], timeout=fetch_timeout)

    dirty = has_uncommitted_changes(repo_path)
    stashed = has_stash(git_dir)

    def status(state: SyncState, ahead: int = 0, behind: int = 0) -> RepositoryStatus:
        return RepositoryStatus(
            path=path,
            branch=branch,
            state=state,
            dirty=dirty,
            stashed=stashed,
            ahead=ahead,
            behind=behind,
            upstream=upstream
        )

    if not upstream:
        return status(classify_state(branch, upstream, 0, 0, False))

    remote, merge = tracking
    remote_hash = resolve_commit(repo_path, f"refs/remotes/{remote}/{merge}")
    if remote_hash is None:
        logger.debug(f"{path}: upstream {upstream} has no local remote-tracking ref")
        upstream = ""
        return status(classify_state(branch, upstream, 0, 0, False))

    with CommitGraph(repo_path) as graph:
        ahead, behind = count_ahead_behind(
            local_hash, remote_hash, graph.parents, max_ancestors
        )

    state = classify_state(branch, upstream, ahead, behind, local_hash == remote_hash)
    return status(state, ahead, behind)
