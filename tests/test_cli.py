"""Tests for the gitscan command line entry point."""

import json
import os
import shutil

import pytest

from gitscan import __version__
from gitscan.__main__ import main

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def test_version(capsys):
    assert main(["version"]) == 0
    assert capsys.readouterr().out.strip() == f"gitscan {__version__}"


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_missing_path_fails(tmp_path, capsys):
    assert main(["list", "--path", str(tmp_path / "missing"), "--no-fetch"]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_invalid_workers_fail(scan_root, capsys):
    assert main(["list", "--path", scan_root, "--workers", "0"]) == 1
    assert "Worker count" in capsys.readouterr().err


@requires_git
def test_json_output_sorted(git, scan_root, capsys):
    git.tracked_repo(os.path.join(scan_root, "zeta"), remote_name="zeta.git")
    local = git.init(os.path.join(scan_root, "alpha"))
    git.commit(local)

    assert main(["list", "--path", scan_root, "--no-fetch", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)

    assert [r["path"] for r in data] == ["alpha", "zeta"]
    assert data[0]["state"] == "no-upstream"
    assert data[1]["state"] == "up-to-date"
    assert data[1]["upstream"] == "origin/main"


@requires_git
def test_streaming_output(git, scan_root, capsys):
    git.tracked_repo(os.path.join(scan_root, "one"), remote_name="one.git")
    git.tracked_repo(os.path.join(scan_root, "two"), remote_name="two.git")

    assert main(["list", "-p", scan_root, "--no-fetch"]) == 0
    lines = capsys.readouterr().out.splitlines()

    assert sorted(lines) == ["one\tmain\tup-to-date", "two\tmain\tup-to-date"]


@requires_git
def test_tabular_output(git, scan_root, capsys):
    git.tracked_repo(os.path.join(scan_root, "one"), remote_name="one.git")

    assert main(["list", "-p", scan_root, "--no-fetch", "--tabular"]) == 0
    out = capsys.readouterr().out

    assert "Repository" in out
    assert "up-to-date" in out
