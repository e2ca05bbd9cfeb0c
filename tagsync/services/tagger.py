"""
Release tagging for tagsync.
"""

import logging
from typing import Optional

from ..config import SyncConfig
from ..domain.component import FrameworkComponent
from ..domain.tag import ReleaseTag
from ..exit_codes import ConsistencyError
from ..infra.git_client import GitClient
from .history import CommitHistoryReader

logger = logging.getLogger(__name__)


class Tagger:
    """
    Stamps the destination tag on a mirror's branch head.

    The annotation names the latest monorepo commit touching the
    component at the destination tag: ``<canonicalName>@<hash> (<time>)``.
    """

    def __init__(
        self,
        config: SyncConfig,
        git_client: GitClient,
        history: Optional[CommitHistoryReader] = None,
    ):
        self.config = config
        self.git = git_client
        self.history = history or CommitHistoryReader(git_client)

    def release_for(self, component: FrameworkComponent) -> ReleaseTag:
        """
        Build the tag without touching the mirror.

        Raises:
            ConsistencyError: If no monorepo commit touches the subtree
        """
        commit = self.history.last_commit(
            self.config.monorepo_path,
            component.source_path,
            ref=self.config.destination_tag,
        )
        if commit is None:
            raise ConsistencyError(
                f"No commit touches {component.source_path} at {self.config.destination_tag}",
                component=component,
            )
        return ReleaseTag.for_component(self.config.destination_tag, component, commit)

    def tag(self, component: FrameworkComponent) -> ReleaseTag:
        """Create the annotated tag in the mirror and return it."""
        release = self.release_for(component)
        self.git.checkout_branch(component.target_path, self.config.branch)
        self.git.tag(
            component.target_path,
            release.name,
            release.message,
            force=self.config.force_tag,
            sign=self.config.sign,
        )
        logger.debug(f"{component.name}: tagged {release.name} ({release.message})")
        return release
