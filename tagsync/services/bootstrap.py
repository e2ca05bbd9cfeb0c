"""
Mirror set bootstrap for tagsync.

Creates the working copies a sync run expects: a clone of the monorepo and
one mirror clone per package the monorepo publishes, laid out so that the
locator finds each mirror under the boundary segment.
"""

import logging
import os
from typing import Dict, Generator, List, Optional

from ..config import BootstrapConfig
from ..domain.component import FrameworkComponent
from ..domain.operation import ComponentResult, StageStatus, SyncSummary
from ..exit_codes import (
    ConfigurationError,
    DelegatedToolFailure,
    IdentityMismatchError,
    NoComponentsFoundError,
)
from ..infra.git_client import GitClient, GitIdentity
from ..infra.manifest_reader import ManifestReader

logger = logging.getLogger(__name__)


class MirrorBootstrapper:
    """
    Clones the monorepo and every missing mirror.

    The packages to mirror are the ``replace`` entries of the monorepo's
    composer.json, minus the excluded ones. Without a ``replace`` list
    every subtree declaring a name is mirrored.

    Example:
        bootstrapper = MirrorBootstrapper(load_bootstrap_config(config))
        for progress in bootstrapper.run():
            print(progress)  # "Cloning git@github.com:zendframework/zend-http.git..."
    """

    def __init__(
        self,
        config: BootstrapConfig,
        git_client: Optional[GitClient] = None,
        manifest_reader: Optional[ManifestReader] = None,
    ):
        self.config = config
        self.git = git_client or GitClient(
            timeout=config.git_timeout,
            identity=GitIdentity(config.git_user_name, config.git_user_email),
        )
        self.manifests = manifest_reader or ManifestReader(config.manifest_filename)
        self.last_result: Optional[SyncSummary] = None

    @property
    def library_root(self) -> str:
        return os.path.join(self.config.monorepo_path, *self.config.library_prefix.split('/'))

    def subtrees(self) -> Dict[str, str]:
        """
        Map package name to monorepo subtree for every subtree with a
        manifest. Descent stops at the first manifest on each path.
        """
        root = self.library_root
        found: Dict[str, str] = {}
        for dirpath, dirnames, _ in os.walk(root):
            dirnames.sort()
            if dirpath == root or not self.manifests.manifest_path(dirpath).is_file():
                continue
            found[self.manifests.read_canonical_name(dirpath)] = dirpath
            dirnames[:] = []
        return found

    def plan(self) -> List[FrameworkComponent]:
        """
        Components to bootstrap, sorted by package name.

        Raises:
            IdentityMismatchError: If a replaced package has no subtree
        """
        subtrees = self.subtrees()
        names = self.manifests.read_replaced_names(self.config.monorepo_path) or sorted(subtrees)

        components = []
        for name in names:
            if name in self.config.exclude:
                logger.debug(f"Excluding {name}")
                continue
            source = subtrees.get(name)
            if source is None:
                raise IdentityMismatchError(
                    f'No subtree under "{self.library_root}" declares "{name}"'
                )
            relative = os.path.relpath(source, self.library_root)
            components.append(FrameworkComponent(
                namespace=relative.replace(os.sep, self.config.namespace_separator),
                name=name,
                source_path=source,
                target_path=os.path.join(
                    self.config.mirrors_root, self.config.boundary_segment, relative
                ),
            ))
        return components

    def clone_monorepo(self) -> bool:
        """
        Clone the monorepo unless a working copy is already there.

        Returns:
            True if a clone was made

        Raises:
            ConfigurationError: If no URL is configured or the path is taken
        """
        path = self.config.monorepo_path
        if os.path.isdir(os.path.join(path, '.git')):
            return False
        if os.path.exists(path):
            raise ConfigurationError(f"Monorepo path exists but is not a git working copy: {path}")
        if not self.config.monorepo_url:
            raise ConfigurationError(
                f"Missing required setting 'init.monorepo_url' (no monorepo at {path})"
            )

        os.makedirs(os.path.dirname(path), exist_ok=True)
        self.git.clone(self.config.monorepo_url, path)
        return True

    def run(self) -> Generator[str, None, SyncSummary]:
        """
        Clone the monorepo if needed, then every mirror not yet present.

        Yields:
            Progress messages

        Returns:
            SyncSummary with one entry per planned mirror

        Raises:
            NoComponentsFoundError: If the monorepo declares no package
            DelegatedToolFailure: If a clone fails
        """
        summary = SyncSummary(operation="init")
        self.last_result = summary

        if not os.path.isdir(os.path.join(self.config.monorepo_path, '.git')):
            yield f"Cloning {self.config.monorepo_url or 'monorepo'} into {self.config.monorepo_path}..."
        self.clone_monorepo()

        components = self.plan()
        if not components:
            raise NoComponentsFoundError(f"No packages found under {self.library_root}")

        for component in components:
            if os.path.isdir(os.path.join(component.target_path, '.git')):
                summary.add_detail(ComponentResult(component, StageStatus.SKIPPED, "exists"))
                yield f"  {component.name}: mirror exists, skipping"
                continue

            if not self.config.mirror_url_template:
                raise ConfigurationError(
                    f"Missing required setting 'init.mirror_url_template' "
                    f"(no mirror at {component.target_path})"
                )
            url = self.config.mirror_url(component.name)
            yield f"  Cloning {url} into {component.target_path}..."
            try:
                os.makedirs(os.path.dirname(component.target_path), exist_ok=True)
                self.git.clone(url, component.target_path)
            except OSError as e:
                raise DelegatedToolFailure(
                    f"Could not create {component.target_path}: {e}", component=component
                ) from e
            except DelegatedToolFailure as e:
                summary.add_detail(ComponentResult(
                    component, StageStatus.FAILED, "clone_failed", error=str(e)
                ))
                raise e.for_component(component) from e

            summary.add_detail(ComponentResult(component, StageStatus.SUCCESS, "cloned", message=url))

        return summary
