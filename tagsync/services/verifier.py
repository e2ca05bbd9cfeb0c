"""
Post-sync verification for tagsync.

The mirror at the destination tag must be byte-identical to the monorepo
subtree at the same tag. Any difference is fatal.
"""

import logging

from ..config import SyncConfig
from ..domain.component import FrameworkComponent
from ..exit_codes import ConsistencyError
from ..infra.git_client import GitClient
from ..infra.tree_diff import diff_trees

logger = logging.getLogger(__name__)


class Verifier:
    """
    Diffs monorepo subtree against mirror at the destination tag.

    Example:
        Verifier(config, git).verify(component)  # raises ConsistencyError on mismatch
    """

    def __init__(self, config: SyncConfig, git_client: GitClient):
        self.config = config
        self.git = git_client

    def diff(self, component: FrameworkComponent) -> str:
        """
        Check out the destination tag on both sides and diff the trees.

        The mirror is put back on the branch it was on afterwards.

        Returns:
            Diff text, empty when the trees are identical
        """
        tag = self.config.destination_tag
        monorepo = self.config.monorepo_path
        mirror = component.target_path

        self.git.reset_hard(monorepo)
        self.git.reset_hard(mirror)
        branch = self.git.current_branch(mirror)

        self.git.checkout(monorepo, tag)
        self.git.checkout(mirror, tag)
        try:
            return diff_trees(component.source_path, mirror)
        finally:
            if branch:
                self.git.checkout(mirror, branch)

    def verify(self, component: FrameworkComponent) -> None:
        """
        Raises:
            ConsistencyError: With the full diff if the trees differ
        """
        diff = self.diff(component)
        if diff:
            raise ConsistencyError(
                f"Mirror differs from {component.source_path} at {self.config.destination_tag}",
                diff=diff,
                component=component,
            )
        logger.debug(f"{component.name}: identical at {self.config.destination_tag}")
