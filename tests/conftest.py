"""
Shared fixtures for tagsync tests.

Real git repositories are built under tmp_path. Tests that need git mark
themselves with ``requires_git``.
"""

import json
import os
import shutil
import subprocess
from pathlib import Path

import pytest

HAS_GIT = shutil.which("git") is not None


def _git(path, *args, timestamp=None):
    env = os.environ.copy()
    env.update({
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    })
    if timestamp is not None:
        env["GIT_AUTHOR_DATE"] = f"@{timestamp} +0000"
        env["GIT_COMMITTER_DATE"] = f"@{timestamp} +0000"
    result = subprocess.run(
        ["git"] + list(args),
        cwd=str(path),
        capture_output=True,
        text=True,
        env=env,
        check=True,
    )
    return result.stdout


def _init_repo(path, bare=False):
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    if bare:
        _git(path, "init", "-q", "--bare")
    else:
        _git(path, "init", "-q")
        _git(path, "config", "user.name", "Test User")
        _git(path, "config", "user.email", "test@example.com")
        _git(path, "config", "commit.gpgsign", "false")
        _git(path, "config", "tag.gpgsign", "false")
    _git(path, "symbolic-ref", "HEAD", "refs/heads/master")
    return path


def _write(path, files):
    for name, content in files.items():
        file_path = Path(path) / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)


def _commit(path, message, timestamp):
    _git(path, "add", "-A")
    _git(path, "commit", "-q", "--allow-empty", "-m", message, timestamp=timestamp)
    return _git(path, "rev-parse", "HEAD").strip()


def composer(name):
    return json.dumps({"name": name}, indent=4) + "\n"


@pytest.fixture
def git():
    """Run a git command in a directory and return stdout."""
    return _git


@pytest.fixture
def init_repo():
    """Create a git repository on branch master."""
    return _init_repo


@pytest.fixture
def zf_layout(tmp_path):
    """
    A monorepo with two components and an empty mirror for one of them.

    Monorepo history:
        t=50   root commit (Bar only)               tag v0
        t=100  c1 adds library/Zend/Foo
        t=150  touches library/Zend/Bar only
        t=200  c2 changes library/Zend/Foo          tag v1

    The Foo mirror lives at mirrors/Zend/Foo with no commits and an
    untracked composer.json, and has a bare remote at remotes/foo.git.
    """
    monorepo = _init_repo(tmp_path / "zf2")
    _write(monorepo, {
        "composer.json": composer("zendframework/zf2"),
        "library/Zend/Bar/composer.json": composer("vendor/bar"),
        "library/Zend/Bar/Bar.php": "<?php\nclass Bar {}\n",
    })
    _commit(monorepo, "Initial import", 50)
    _git(monorepo, "tag", "v0")

    _write(monorepo, {
        "library/Zend/Foo/composer.json": composer("vendor/foo"),
        "library/Zend/Foo/src/Foo.php": "<?php\nclass Foo {}\n",
    })
    c1 = _commit(monorepo, "Add Foo", 100)

    _write(monorepo, {"library/Zend/Bar/Bar.php": "<?php\nclass Bar { const X = 1; }\n"})
    _commit(monorepo, "Change Bar", 150)

    _write(monorepo, {
        "library/Zend/Foo/src/Foo.php": "<?php\nclass Foo { const VERSION = 1; }\n",
        "library/Zend/Foo/README.md": "# Foo\n",
    })
    c2 = _commit(monorepo, "Change Foo", 200)
    _git(monorepo, "tag", "-a", "v1", "-m", "Release v1", timestamp=200)

    remote = _init_repo(tmp_path / "remotes" / "foo.git", bare=True)

    mirror = _init_repo(tmp_path / "mirrors" / "Zend" / "Foo")
    _git(mirror, "remote", "add", "origin", str(remote))
    _write(mirror, {"composer.json": composer("vendor/foo")})

    return {
        "root": tmp_path,
        "monorepo": monorepo,
        "mirrors": tmp_path / "mirrors",
        "mirror": mirror,
        "remote": remote,
        "c1": c1,
        "c2": c2,
    }


@pytest.fixture
def zf_config(zf_layout):
    """Configuration dict for the zf_layout repositories."""
    return {
        "sync": {
            "monorepo_path": str(zf_layout["monorepo"]),
            "mirrors_root": str(zf_layout["mirrors"]),
            "source_tag": "v0",
            "destination_tag": "v1",
            "remote": "origin",
            "branch": "master",
            "monorepo_name": "zendframework/zf2",
        },
        "git": {
            "user_name": "Sync Bot",
            "user_email": "sync@example.com",
        },
    }
