"""Repository discovery: walk a directory tree for git repositories."""

import os
import logging
from typing import List

logger = logging.getLogger('gitscan')

GIT_DIR_NAME = '.git'


def _raise(error: OSError) -> None:
    raise error


def discover_repos(root: str) -> List[str]:
    """Walk a directory tree and return the root of every git repository.

    A '.git' entry marks its parent directory as a repository root. The
    walk never descends into '.git' itself but does continue into the rest
    of the repository, so nested repositories are found too.

    Args:
        root: Directory to walk

    Returns:
        Repository root paths, joined onto root

    Raises:
        OSError: If any directory cannot be listed
    """
    repos = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        if GIT_DIR_NAME in dirnames:
            dirnames.remove(GIT_DIR_NAME)
            repos.append(dirpath)
        elif GIT_DIR_NAME in filenames:
            # Linked work tree or submodule: '.git' is a gitdir pointer file
            repos.append(dirpath)
        dirnames.sort()

    logger.debug(f"Discovered {len(repos)} repositories under {root}")
    return repos


def relative_path(root: str, path: str) -> str:
    """Express a repository path relative to the scan root.

    Args:
        root: Scan root
        path: Repository root

    Returns:
        Relative path, or '.' for the root itself or when no relative path exists
    """
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # Different drives on Windows
        return "."
    return rel
