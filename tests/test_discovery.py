"""Tests for gitscan.core.discovery."""

import os

import pytest

from gitscan.core.discovery import discover_repos, relative_path


def make_git_dir(*parts):
    path = os.path.join(*parts, ".git")
    os.makedirs(path)
    return path


def test_finds_repositories_at_depths_0_1_and_3(scan_root):
    make_git_dir(scan_root)
    make_git_dir(scan_root, "one")
    make_git_dir(scan_root, "x", "y", "three")
    os.makedirs(os.path.join(scan_root, "plain", "dir"))

    repos = discover_repos(scan_root)

    assert sorted(repos) == sorted([
        scan_root,
        os.path.join(scan_root, "one"),
        os.path.join(scan_root, "x", "y", "three"),
    ])


def test_never_descends_into_git_directory(scan_root):
    git_dir = make_git_dir(scan_root, "repo")
    # Looks like a repository, but lives inside .git
    os.makedirs(os.path.join(git_dir, "modules", "sub", ".git"))

    repos = discover_repos(scan_root)

    assert repos == [os.path.join(scan_root, "repo")]
    assert all(".git" not in os.path.relpath(r, scan_root).split(os.sep) for r in repos)


def test_git_pointer_file_marks_repository(scan_root):
    worktree = os.path.join(scan_root, "linked")
    os.makedirs(worktree)
    with open(os.path.join(worktree, ".git"), "w") as f:
        f.write("gitdir: /elsewhere/.git/worktrees/linked\n")

    assert discover_repos(scan_root) == [worktree]


def test_nested_repository_inside_work_tree(scan_root):
    make_git_dir(scan_root, "outer")
    make_git_dir(scan_root, "outer", "vendor", "inner")

    assert discover_repos(scan_root) == [
        os.path.join(scan_root, "outer"),
        os.path.join(scan_root, "outer", "vendor", "inner"),
    ]


def test_empty_tree_has_no_repositories(scan_root):
    assert discover_repos(scan_root) == []


def test_missing_root_is_fatal(tmp_path):
    with pytest.raises(OSError):
        discover_repos(str(tmp_path / "does-not-exist"))


@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
def test_unreadable_directory_is_fatal(scan_root):
    locked = os.path.join(scan_root, "locked")
    os.makedirs(locked)
    os.chmod(locked, 0)
    try:
        with pytest.raises(PermissionError):
            discover_repos(scan_root)
    finally:
        os.chmod(locked, 0o755)


def test_relative_path():
    assert relative_path("/src", "/src") == "."
    assert relative_path("/src", "/src/a/b") == os.path.join("a", "b")
