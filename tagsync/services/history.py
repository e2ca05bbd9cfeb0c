"""
Commit history queries for tagsync.

Wraps ``git log`` to list the monorepo commits touching a component's
subtree. Raw ``timestamp:hash`` records are decoded in exactly one place,
``decode_log_record``.
"""

import logging
import os
from typing import List, Optional

from ..domain.commit import Commit
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)

LOG_FORMAT = '%ct:%H'


def decode_log_record(record: str) -> Commit:
    """
    Decode one ``%ct:%H`` log record.

    Raises:
        MalformedCommitRecord: If the record is not a valid
            ``<integer>:<40 hex>`` pair
    """
    return Commit.parse(record)


def _pathspec(repo_path: str, subtree_path: str) -> str:
    if os.path.isabs(subtree_path):
        return os.path.relpath(subtree_path, repo_path)
    return subtree_path


class CommitHistoryReader:
    """
    Lists commits touching a subtree.

    Example:
        reader = CommitHistoryReader(GitClient())
        for commit in reader.commits_between(zf2, "library/Zend/Http", "v2.3.0", "v2.4.0"):
            print(commit.hash, commit.timestamp)
    """

    def __init__(self, git_client: Optional[GitClient] = None):
        self.git = git_client or GitClient()

    def commits_between(
        self,
        repo_path: str,
        subtree_path: str,
        from_ref: Optional[str],
        to_ref: str,
    ) -> List[Commit]:
        """
        Commits touching ``subtree_path`` reachable from ``to_ref`` but not
        from ``from_ref``, oldest first.

        Args:
            repo_path: Monorepo working copy
            subtree_path: Subtree, absolute or relative to repo_path
            from_ref: Exclusive lower bound; empty means from the root commit
            to_ref: Inclusive upper bound

        Raises:
            MalformedCommitRecord: If git returns an undecodable record
            DelegatedToolFailure: If git log fails
        """
        ref_range = f"{from_ref}..{to_ref}" if from_ref else to_ref
        records = self.git.log(repo_path, ref_range, _pathspec(repo_path, subtree_path), fmt=LOG_FORMAT)

        # git log lists newest first
        commits = [decode_log_record(record) for record in reversed(records)]
        logger.debug(f"{len(commits)} commits touch {subtree_path} in {ref_range}")
        return commits

    def last_commit(
        self,
        repo_path: str,
        subtree_path: str,
        ref: Optional[str] = None,
    ) -> Optional[Commit]:
        """
        Most recent commit touching ``subtree_path`` (at ``ref``, or HEAD).

        Returns:
            The commit, or None if no commit touches the subtree
        """
        records = self.git.log(
            repo_path, ref or 'HEAD', _pathspec(repo_path, subtree_path), limit=1, fmt=LOG_FORMAT
        )
        if not records:
            return None
        return decode_log_record(records[0])
