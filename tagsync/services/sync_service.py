"""
Sync pipeline for tagsync.

Runs the sync stages over the whole component collection, one stage at a
time: check → import → tag → verify → publish. Every component finishes a
stage before any component starts the next one, so nothing is pushed
unless every mirror verified.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Generator, List, Optional

from ..config import SyncConfig
from ..domain.component import FrameworkComponent
from ..domain.operation import ComponentResult, StageStatus, SyncSummary
from ..domain.tag import ReleaseTag
from ..exit_codes import (
    DelegatedToolFailure,
    MalformedCommitRecord,
    NoComponentsFoundError,
    SyncError,
)
from ..infra.directory_sync import create_directory_sync
from ..infra.git_client import GitClient, GitIdentity
from ..infra.manifest_reader import ManifestReader
from .history import CommitHistoryReader
from .importer import Importer
from .locator import ComponentLocator
from .publisher import Publisher
from .tagger import Tagger
from .verifier import Verifier

logger = logging.getLogger(__name__)


class SyncService:
    """
    Synchronizes every mirror with the monorepo at the destination tag.

    Example:
        service = SyncService(sync_config)

        for progress in service.run():
            print(progress)  # "Importing zendframework/zend-http..."

        summary = service.last_result
        print(f"Published {summary.successful} components")
    """

    def __init__(
        self,
        config: SyncConfig,
        git_client: Optional[GitClient] = None,
        directory_sync=None,
        manifest_reader: Optional[ManifestReader] = None,
    ):
        """
        Initialize SyncService.

        Args:
            config: Validated run configuration
            git_client: GitClient instance (creates new if None)
            directory_sync: Mirroring collaborator (from config if None)
            manifest_reader: ManifestReader (from config if None)
        """
        self.config = config
        self.git = git_client or GitClient(
            timeout=config.git_timeout,
            identity=GitIdentity(config.git_user_name, config.git_user_email),
        )
        self.directory_sync = directory_sync or create_directory_sync(config.mirror_tool)
        self.manifests = manifest_reader or ManifestReader(config.manifest_filename)

        self.locator = ComponentLocator(config, self.manifests)
        self.history = CommitHistoryReader(self.git)
        self.importer = Importer(config, self.git, self.directory_sync, self.history)
        self.tagger = Tagger(config, self.git, self.history)
        self.verifier = Verifier(config, self.git)
        self.publisher = Publisher(config, self.git)

        self.last_result: Optional[SyncSummary] = None

    @contextmanager
    def _stage(self, summary: SyncSummary, component: FrameworkComponent, action: str):
        """Record a failed stage on the summary and re-raise with the component attached."""
        try:
            yield
        except DelegatedToolFailure as e:
            failure = e.for_component(component)
            self._record_failure(summary, component, action, failure)
            raise failure from e
        except MalformedCommitRecord as e:
            failure = MalformedCommitRecord(str(e), component=component)
            self._record_failure(summary, component, action, failure)
            raise failure from e
        except SyncError as e:
            self._record_failure(summary, component, action, e)
            raise

    @staticmethod
    def _record_failure(summary, component, action, error) -> None:
        summary.add_detail(ComponentResult(
            component=component,
            status=StageStatus.FAILED,
            action=f"{action}_failed",
            tag=summary.tag,
            error=str(error),
        ))

    def locate(self) -> List[FrameworkComponent]:
        """
        Raises:
            NoComponentsFoundError: If the mirrors root holds no mirror
        """
        components = self.locator.locate()
        if not components:
            raise NoComponentsFoundError(
                f"No mirror repositories found under {self.config.mirrors_root}"
            )
        return components

    def run(self, dry_run: bool = False) -> Generator[str, None, SyncSummary]:
        """
        Synchronize, tag, verify and publish every component.

        Args:
            dry_run: Stop after the check stage and report pending commits

        Yields:
            Progress messages

        Returns:
            SyncSummary with results

        Raises:
            SyncError: On the first unrecoverable error
        """
        tag = self.config.destination_tag
        summary = SyncSummary(operation="sync", tag=tag, dry_run=dry_run)
        self.last_result = summary

        components = self.locate()
        yield f"Found {len(components)} components under {self.config.mirrors_root}"

        pending = []
        for component in components:
            with self._stage(summary, component, "check"):
                synchronized = self.importer.is_synchronized(component)
            if synchronized:
                summary.add_detail(ComponentResult(
                    component=component,
                    status=StageStatus.SKIPPED,
                    action="up_to_date",
                    tag=tag,
                ))
                yield f"  {component.name}: {tag} already exists, skipping"
            else:
                pending.append(component)

        if not pending:
            yield "All components are up to date"
            return summary

        if dry_run:
            for component in pending:
                with self._stage(summary, component, "history"):
                    commits = self.importer.pending_commits(component)
                summary.add_detail(ComponentResult(
                    component=component,
                    status=StageStatus.DRY_RUN,
                    action="would_import",
                    commits_replayed=len(commits),
                    tag=tag,
                ))
                yield f"Would replay {len(commits)} commits into {component.name}"
            return summary

        for component in pending:
            with self._stage(summary, component, "reset"):
                self.importer.reset(component)

        replayed: Dict[FrameworkComponent, int] = {}
        for component in pending:
            yield f"Importing {component.name}..."
            with self._stage(summary, component, "import"):
                commits = self.importer.pending_commits(component)
                replayed[component] = self.importer.replay(component, commits)
            yield f"  {component.name}: replayed {replayed[component]} of {len(commits)} commits"

        releases: Dict[FrameworkComponent, ReleaseTag] = {}
        for component in pending:
            with self._stage(summary, component, "tag"):
                releases[component] = self.tagger.tag(component)
            yield f"  {component.name}: tagged {tag} ({releases[component].message})"

        for component in pending:
            with self._stage(summary, component, "verify"):
                self.verifier.verify(component)
            yield f"  ✓ {component.name}: identical to monorepo at {tag}"

        for component in pending:
            action = "verified"
            if self.config.push:
                with self._stage(summary, component, "publish"):
                    self.publisher.publish(component)
                action = "published"
                yield f"  ✓ {component.name}: pushed {self.config.branch} and {tag} to {self.config.remote}"

            summary.add_detail(ComponentResult(
                component=component,
                status=StageStatus.SUCCESS,
                action=action,
                commits_replayed=replayed[component],
                tag=tag,
                message=releases[component].message,
            ))

        return summary

    def verify_all(self) -> Generator[str, None, SyncSummary]:
        """
        Verify every component at the destination tag without changing
        any mirror history.

        Raises:
            ConsistencyError: On the first mismatch
        """
        tag = self.config.destination_tag
        summary = SyncSummary(operation="verify", tag=tag)
        self.last_result = summary

        components = self.locate()
        yield f"Verifying {len(components)} components at {tag}"

        for component in components:
            with self._stage(summary, component, "verify"):
                self.verifier.verify(component)
            summary.add_detail(ComponentResult(
                component=component,
                status=StageStatus.SUCCESS,
                action="verified",
                tag=tag,
            ))
            yield f"  ✓ {component.name}"

        return summary
