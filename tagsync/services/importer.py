"""
Commit replay for tagsync.

Re-creates the history of a monorepo subtree inside its mirror, one mirror
commit per monorepo commit, each carrying the original commit time.
"""

import logging
import re
from typing import Iterable, List, Optional, Set

from ..config import SyncConfig
from ..domain.commit import Commit
from ..domain.component import FrameworkComponent
from ..infra.git_client import GitClient
from .history import CommitHistoryReader

logger = logging.getLogger(__name__)

# Matches the provenance cited in a replayed commit's subject
_CITED_COMMIT = re.compile(r'@([0-9a-fA-F]{40}) \(\d+\)')


def cited_hashes(subjects: Iterable[str]) -> Set[str]:
    """Monorepo hashes cited by replayed commit subjects."""
    hashes = set()
    for subject in subjects:
        match = _CITED_COMMIT.search(subject)
        if match:
            hashes.add(match.group(1).lower())
    return hashes


class Importer:
    """
    Replays monorepo commits into a mirror repository.

    Commits already cited by a mirror commit are not replayed again, so a
    second run over the same range records nothing and an interrupted run
    resumes where it stopped.

    Example:
        importer = Importer(config, git, DirectorySync())
        if not importer.is_synchronized(component):
            importer.replay(component, importer.pending_commits(component))
    """

    def __init__(
        self,
        config: SyncConfig,
        git_client: GitClient,
        directory_sync,
        history: Optional[CommitHistoryReader] = None,
    ):
        self.config = config
        self.git = git_client
        self.mirror = directory_sync
        self.history = history or CommitHistoryReader(git_client)

    def is_synchronized(self, component: FrameworkComponent) -> bool:
        """True if the mirror, after fetching tags from the remote, has the destination tag."""
        self.git.fetch(component.target_path, self.config.remote, tags=True)
        return self.config.destination_tag in self.git.list_tags(component.target_path)

    def pending_commits(self, component: FrameworkComponent) -> List[Commit]:
        """Monorepo commits touching the component between the two tags."""
        return self.history.commits_between(
            self.config.monorepo_path,
            component.source_path,
            self.config.source_tag,
            self.config.destination_tag,
        )

    def commit_message(self, commit: Commit) -> str:
        return (
            f"Importing state as of {commit.provenance(self.config.origin_name)}\n\n"
            f"Automatic import via {self.mirror.name}\n\n"
            f"Preparing release for tag '{self.config.destination_tag}'"
        )

    def reset(self, component: FrameworkComponent) -> None:
        """Discard uncommitted changes in the monorepo and the mirror."""
        self.git.reset_hard(self.config.monorepo_path)
        self.git.reset_hard(component.target_path)

    def replay(self, component: FrameworkComponent, commits: List[Commit]) -> int:
        """
        Replay ``commits`` (oldest first) into the component's mirror.

        Returns:
            Number of mirror commits recorded

        Raises:
            DelegatedToolFailure: If a git or mirroring step fails
        """
        self.reset(component)
        self.git.checkout_branch(component.target_path, self.config.branch)

        already = cited_hashes(self.git.log_subjects(component.target_path))
        recorded = 0

        for commit in commits:
            if commit.hash.lower() in already:
                logger.debug(f"{component.name}: {commit.short_hash} already replayed")
                continue

            self.replay_commit(component, commit)
            recorded += 1

        return recorded

    def replay_commit(self, component: FrameworkComponent, commit: Commit) -> None:
        """Import the subtree state of one monorepo commit."""
        self.reset(component)
        self.git.checkout(self.config.monorepo_path, commit.hash)
        self.mirror.mirror(component.source_path, component.target_path)

        self.git.commit(
            component.target_path,
            self.commit_message(commit),
            allow_empty=True,
            timestamp=commit.timestamp,
            sign=self.config.sign,
        )
        logger.debug(f"{component.name}: replayed {commit}")
