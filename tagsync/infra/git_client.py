"""
Git client infrastructure for tagsync.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic

Every method takes the repository path explicitly; the process working
directory is never changed. A non-zero exit status raises
DelegatedToolFailure unless the method documents otherwise.
"""

import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple
import logging

from ..exit_codes import DelegatedToolFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitIdentity:
    """Author/committer identity forced onto commits and tags."""
    name: str = ""
    email: str = ""

    def to_env(self) -> Dict[str, str]:
        env = {}
        if self.name:
            env['GIT_AUTHOR_NAME'] = self.name
            env['GIT_COMMITTER_NAME'] = self.name
        if self.email:
            env['GIT_AUTHOR_EMAIL'] = self.email
            env['GIT_COMMITTER_EMAIL'] = self.email
        return env


def git_date(timestamp: int) -> str:
    """Format a unix timestamp in git's internal date format."""
    return f"@{timestamp} +0000"


class GitClient:
    """
    Abstraction over git commands.

    Example:
        client = GitClient()
        client.checkout("/path/to/monorepo", "release-2.4.0")
        for record in client.log("/path/to/monorepo", "v1..v2", "library/Zend/Http"):
            print(record)  # "1400000000:3f2a..."
    """

    def __init__(self, timeout: Optional[int] = None, identity: Optional[GitIdentity] = None):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: no timeout)
            identity: Name/email used for replayed commits and tags
        """
        self.timeout = timeout
        self.identity = identity or GitIdentity()

    def _run(
        self,
        args: List[str],
        cwd: str,
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, int]:
        """
        Run a git command.

        Args:
            args: Git arguments (e.g., ['status', '--porcelain'])
            cwd: Repository path
            check: Raise DelegatedToolFailure on non-zero exit
            env: Extra environment variables

        Returns:
            Tuple of (stdout, returncode)
        """
        cmd = ['git'] + args
        full_env = None
        extra = dict(self.identity.to_env())
        if env:
            extra.update(env)
        if extra:
            full_env = os.environ.copy()
            full_env.update(extra)

        logger.debug(f"[{cwd}] {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=full_env,
            )
        except subprocess.TimeoutExpired:
            raise DelegatedToolFailure(
                f"git command timed out after {self.timeout}s in {cwd}: {' '.join(cmd)}",
                command=cmd,
            ) from None
        except OSError as e:
            raise DelegatedToolFailure(
                f"Could not run git in {cwd}: {e}", command=cmd
            ) from e

        if check and result.returncode != 0:
            raise DelegatedToolFailure(
                f"git command failed ({result.returncode}) in {cwd}: {' '.join(cmd)}",
                command=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        return result.stdout, result.returncode

    def has_head(self, path: str) -> bool:
        """True unless the current branch is unborn (no commits yet)."""
        _, code = self._run(['rev-parse', '--verify', '-q', 'HEAD'], cwd=path, check=False)
        return code == 0

    def current_branch(self, path: str) -> Optional[str]:
        """Get current branch name, or None when HEAD is detached."""
        output, code = self._run(['symbolic-ref', '-q', '--short', 'HEAD'], cwd=path, check=False)
        if code == 0 and output.strip():
            return output.strip()
        return None

    def checkout(self, path: str, ref: str) -> None:
        """Check out a branch, tag or commit."""
        self._run(['checkout', '-q', ref], cwd=path)

    def checkout_branch(self, path: str, branch: str) -> None:
        """
        Put the working copy on ``branch``.

        On a repository without commits HEAD is pointed at the branch so
        that the first commit creates it.
        """
        if self.has_head(path):
            self.checkout(path, branch)
        else:
            self._run(['symbolic-ref', 'HEAD', f'refs/heads/{branch}'], cwd=path)

    def reset_hard(self, path: str) -> None:
        """
        Discard every uncommitted change, untracked files included.

        Untracked files are staged first so that the hard reset removes
        them as well. On an unborn branch there is nothing to reset to, so
        the index is emptied and untracked files are cleaned instead.
        """
        self._run(['add', '-A', ':/'], cwd=path)
        if self.has_head(path):
            self._run(['reset', '-q', '--hard', 'HEAD'], cwd=path)
        else:
            self._run(['rm', '-r', '-q', '--cached', '--ignore-unmatch', '--', '.'], cwd=path)
            self._run(['clean', '-f', '-d', '-q'], cwd=path)

    def stage_all(self, path: str) -> None:
        """Stage additions, modifications and deletions."""
        self._run(['add', '-A', ':/'], cwd=path)

    def commit(
        self,
        path: str,
        message: str,
        allow_empty: bool = True,
        timestamp: Optional[int] = None,
        sign: bool = False,
    ) -> None:
        """
        Commit every working copy change.

        Args:
            path: Repository path
            message: Commit message
            allow_empty: Record a commit even if nothing changed
            timestamp: Force author and committer date (unix seconds)
            sign: GPG-sign the commit
        """
        self.stage_all(path)

        args = ['commit', '-q', '-m', message]
        if allow_empty:
            args.append('--allow-empty')
        if sign:
            args.append('-S')

        env = None
        if timestamp is not None:
            env = {
                'GIT_AUTHOR_DATE': git_date(timestamp),
                'GIT_COMMITTER_DATE': git_date(timestamp),
            }
        self._run(args, cwd=path, env=env)

    def tag(
        self,
        path: str,
        name: str,
        message: str,
        force: bool = False,
        sign: bool = False,
    ) -> None:
        """Create an annotated (or signed) tag on HEAD."""
        args = ['tag', '-s' if sign else '-a']
        if force:
            args.append('-f')
        args += [name, '-m', message]
        self._run(args, cwd=path)

    def push(self, path: str, remote: str, ref: str, force: bool = False) -> None:
        """Push a single ref to a remote."""
        args = ['push', '-q']
        if force:
            args.append('-f')
        args += [remote, ref]
        self._run(args, cwd=path)

    def fetch(self, path: str, remote: str = "origin", tags: bool = True) -> None:
        """Fetch branches, and tags unless ``tags`` is False, from remote."""
        args = ['fetch', '-q', '--tags' if tags else '--no-tags', remote]
        self._run(args, cwd=path)

    def clone(self, url: str, dest: str) -> None:
        """Clone ``url`` into ``dest``; the parent directory must exist."""
        self._run(['clone', '-q', url, dest], cwd=os.path.dirname(os.path.abspath(dest)))

    def list_tags(self, path: str) -> Set[str]:
        """Local tag names."""
        output, _ = self._run(['tag', '--list'], cwd=path)
        return {line.strip() for line in output.splitlines() if line.strip()}

    def log(
        self,
        path: str,
        ref_range: str,
        path_filter: Optional[str] = None,
        limit: Optional[int] = None,
        fmt: str = '%ct:%H',
    ) -> List[str]:
        """
        Raw log records, newest first.

        Args:
            path: Repository path
            ref_range: Revision or range (e.g., "v1..v2", "HEAD")
            path_filter: Only commits touching this path
            limit: Maximum records to return
            fmt: Pretty format for each record

        Returns:
            One string per commit, formatted with ``fmt``
        """
        args = ['log', f'--format=format:{fmt}']
        if limit:
            args.append(f'-n{limit}')
        args.append(ref_range)
        args.append('--')
        if path_filter:
            args.append(path_filter)

        output, _ = self._run(args, cwd=path)
        return [line for line in output.splitlines() if line.strip()]

    def log_subjects(self, path: str) -> List[str]:
        """Subject lines of every commit on HEAD; empty for an unborn branch."""
        if not self.has_head(path):
            return []
        return self.log(path, 'HEAD', fmt='%s')
