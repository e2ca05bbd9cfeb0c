"""
Directory mirroring infrastructure for tagsync.

Makes a destination tree match a source tree exactly: missing files are
copied, changed files overwritten, extraneous files deleted. Version
control metadata and editor swap/undo files are neither copied nor
deleted.

Two implementations share the same interface:
- DirectorySync: pure Python (shutil/filecmp), the default
- RsyncDirectorySync: shells out to rsync
"""

import filecmp
import fnmatch
import logging
import os
import shutil
import subprocess
from typing import Iterable, List

from ..exit_codes import DelegatedToolFailure, ConfigurationError

logger = logging.getLogger(__name__)

# Never copied, never deleted
EXCLUDE_PATTERNS = ['.git', '.*.sw*', '.*.un~']


def is_excluded(name: str, patterns: Iterable[str] = EXCLUDE_PATTERNS) -> bool:
    """Check a single path segment against the exclude patterns."""
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


class DirectorySync:
    """
    Mirror a directory tree with shutil.

    Example:
        sync = DirectorySync()
        sync.mirror("/src/zf2/library/Zend/Http", "/mirrors/zend-http")
    """

    name = "python"

    def __init__(self, exclude: Iterable[str] = EXCLUDE_PATTERNS):
        self.exclude = list(exclude)

    def mirror(self, source_dir: str, dest_dir: str) -> None:
        """
        Make dest_dir's tree identical to source_dir's.

        Raises:
            DelegatedToolFailure: If the source is missing or a file
                operation fails
        """
        if not os.path.isdir(source_dir):
            raise DelegatedToolFailure(f"Mirror source is not a directory: {source_dir}")

        logger.debug(f"Mirroring {source_dir} -> {dest_dir}")
        try:
            os.makedirs(dest_dir, exist_ok=True)
            self._sync_dir(source_dir, dest_dir)
        except OSError as e:
            raise DelegatedToolFailure(
                f"Mirroring {source_dir} to {dest_dir} failed: {e}"
            ) from e

    def _entries(self, path: str) -> List[str]:
        return sorted(name for name in os.listdir(path) if not is_excluded(name, self.exclude))

    def _sync_dir(self, source: str, dest: str) -> None:
        source_entries = self._entries(source)
        wanted = set(source_entries)

        for name in self._entries(dest):
            if name not in wanted:
                _remove(os.path.join(dest, name))

        for name in source_entries:
            src = os.path.join(source, name)
            dst = os.path.join(dest, name)

            if os.path.islink(src):
                if os.path.lexists(dst):
                    _remove(dst)
                os.symlink(os.readlink(src), dst)
            elif os.path.isdir(src):
                if os.path.lexists(dst) and (os.path.islink(dst) or not os.path.isdir(dst)):
                    _remove(dst)
                os.makedirs(dst, exist_ok=True)
                self._sync_dir(src, dst)
            else:
                self._sync_file(src, dst)

    def _sync_file(self, src: str, dst: str) -> None:
        if os.path.lexists(dst) and (os.path.islink(dst) or os.path.isdir(dst)):
            _remove(dst)

        if os.path.exists(dst) and filecmp.cmp(src, dst, shallow=False):
            shutil.copymode(src, dst)
            return

        shutil.copy2(src, dst)


class RsyncDirectorySync:
    """Mirror a directory tree with ``rsync --archive --delete``."""

    name = "rsync"

    def __init__(self, exclude: Iterable[str] = EXCLUDE_PATTERNS, executable: str = "rsync"):
        self.exclude = list(exclude)
        self.executable = executable

    def command(self, source_dir: str, dest_dir: str) -> List[str]:
        cmd = [self.executable, '--quiet', '--archive', '--filter=P .git']
        cmd += [f'--exclude={pattern}' for pattern in self.exclude]
        cmd += ['--delete', source_dir.rstrip('/') + '/', dest_dir.rstrip('/') + '/']
        return cmd

    def mirror(self, source_dir: str, dest_dir: str) -> None:
        if not os.path.isdir(source_dir):
            raise DelegatedToolFailure(f"Mirror source is not a directory: {source_dir}")

        cmd = self.command(source_dir, dest_dir)
        logger.debug(' '.join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise DelegatedToolFailure(f"Could not run {self.executable}: {e}", command=cmd) from e

        if result.returncode != 0:
            raise DelegatedToolFailure(
                f"rsync failed ({result.returncode}) mirroring {source_dir} to {dest_dir}",
                command=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )


MIRROR_TOOLS = {
    DirectorySync.name: DirectorySync,
    RsyncDirectorySync.name: RsyncDirectorySync,
}


def create_directory_sync(tool: str = "python"):
    """Build the mirroring collaborator named in the configuration."""
    try:
        return MIRROR_TOOLS[tool]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown mirror tool '{tool}' (expected one of: {', '.join(sorted(MIRROR_TOOLS))})"
        ) from None
