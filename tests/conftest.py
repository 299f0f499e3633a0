"""Shared fixtures: throw-away git repositories built with the git binary."""

import os
import subprocess

import pytest


class GitHelper:
    """Build repositories, remotes and commits for tests."""

    def __init__(self, base):
        self.base = base
        self._counter = 0

    def run(self, cwd, *args) -> str:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout.strip()

    def init(self, path, bare=False):
        os.makedirs(path, exist_ok=True)
        args = ["init", "-q"]
        if bare:
            args.append("--bare")
        self.run(path, *args)
        self.run(path, "symbolic-ref", "HEAD", "refs/heads/main")
        return path

    def commit(self, repo, message=None) -> str:
        self._counter += 1
        name = f"file{self._counter}.txt"
        with open(os.path.join(repo, name), "w") as f:
            f.write(f"change {self._counter}\n")
        self.run(repo, "add", name)
        self.run(repo, "commit", "-q", "-m", message or f"commit {self._counter}")
        return self.head(repo)

    def head(self, repo) -> str:
        return self.run(repo, "rev-parse", "HEAD")

    def remote(self, name="remote.git"):
        """Create a bare remote seeded with one commit on main."""
        bare = self.init(os.path.join(self.base, "remotes", name), bare=True)
        seed = self.init(os.path.join(self.base, "seeds", name))
        self.commit(seed, "initial")
        self.run(seed, "remote", "add", "origin", bare)
        self.run(seed, "push", "-q", "origin", "main")
        return bare

    def clone(self, bare, path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        self.run(os.path.dirname(path), "clone", "-q", bare, path)
        return path

    def tracked_repo(self, path, remote_name="remote.git"):
        """Clone a fresh remote into path; main tracks origin/main."""
        bare = self.remote(remote_name)
        self.clone(bare, path)
        return path


@pytest.fixture(autouse=True)
def git_env(tmp_path, monkeypatch):
    """Isolate git from the user's configuration."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    for name in ("GITSCAN_PATH", "GITSCAN_NO_FETCH", "GITSCAN_FETCH_TIMEOUT", "GITSCAN_WORKERS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def git(tmp_path):
    return GitHelper(str(tmp_path / "fixtures"))


@pytest.fixture
def scan_root(tmp_path):
    root = tmp_path / "scan"
    root.mkdir()
    return str(root)
