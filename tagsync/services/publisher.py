"""
Publishing for tagsync: pushes a verified mirror's branch and tag.
"""

import logging

from ..config import SyncConfig
from ..domain.component import FrameworkComponent
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class Publisher:
    """Pushes the primary branch and destination tag to the remote."""

    def __init__(self, config: SyncConfig, git_client: GitClient):
        self.config = config
        self.git = git_client

    def refs(self):
        return [self.config.branch, f"refs/tags/{self.config.destination_tag}"]

    def publish(self, component: FrameworkComponent) -> None:
        """Only call after the component passed verification."""
        for ref in self.refs():
            self.git.push(
                component.target_path,
                self.config.remote,
                ref,
                force=self.config.force_push,
            )
        logger.debug(f"{component.name}: pushed {', '.join(self.refs())} to {self.config.remote}")
