"""
Component discovery for tagsync.

Finds mirror working copies under the mirrors root and pairs each one with
the monorepo subtree it publishes.
"""

import logging
import os
from typing import Iterator, List, Optional

from ..config import SyncConfig
from ..domain.component import FrameworkComponent
from ..exit_codes import IdentityMismatchError
from ..infra.manifest_reader import ManifestReader

logger = logging.getLogger(__name__)


def extract_namespace(path: str, base_path: str, boundary: str = "Zend", separator: str = "\\") -> str:
    """
    Derive a component namespace from a mirror path.

    Trailing segments of the path relative to ``base_path`` are collected
    until the boundary segment is reached or segments run out.

    Example:
        extract_namespace("/m/zendframework/Zend/Http", "/m/zendframework/")  -> "Http"
        extract_namespace("/m/Zend/Mvc/Router", "/m")                         -> "Mvc\\Router"
    """
    relative = os.path.relpath(os.path.abspath(path), os.path.abspath(base_path))
    segments = [s for s in relative.split(os.sep) if s and s != os.curdir]

    name: List[str] = []
    while segments:
        segment = segments.pop()
        if segment == boundary:
            break
        name.insert(0, segment)

    return separator.join(name)


def source_path_for(
    namespace: str,
    monorepo_path: str,
    library_prefix: str = "library/Zend",
    separator: str = "\\",
) -> str:
    """Monorepo subtree path for a namespace."""
    relative = namespace.replace(separator, '/')
    return os.path.join(monorepo_path, *library_prefix.split('/'), *relative.split('/'))


def find_mirror_repos(root: str) -> Iterator[str]:
    """
    Yield every directory under ``root`` holding a ``.git`` directory.

    Descent stops at a repository root, so nested repositories inside a
    mirror are not reported. Order is sorted and deterministic.
    """
    for dirpath, dirnames, _ in os.walk(root):
        dirnames.sort()
        if dirpath != root and os.path.isdir(os.path.join(dirpath, '.git')):
            yield dirpath
            dirnames[:] = []
            continue
        dirnames[:] = [d for d in dirnames if d != '.git']


class ComponentLocator:
    """
    Discovers mirror repositories and builds their FrameworkComponent.

    Example:
        locator = ComponentLocator(sync_config)
        for component in locator.locate():
            print(component.name, component.source_path)
    """

    def __init__(self, config: SyncConfig, manifest_reader: Optional[ManifestReader] = None):
        self.config = config
        self.manifests = manifest_reader or ManifestReader(config.manifest_filename)

    def namespace_for(self, path: str) -> str:
        return extract_namespace(
            path,
            self.config.mirrors_root,
            boundary=self.config.boundary_segment,
            separator=self.config.namespace_separator,
        )

    def component_for(self, path: str, name: Optional[str] = None) -> FrameworkComponent:
        """
        Build the component for one mirror path.

        Raises:
            IdentityMismatchError: If the manifests disagree
        """
        namespace = self.namespace_for(path)
        source = source_path_for(
            namespace,
            self.config.monorepo_path,
            library_prefix=self.config.library_prefix,
            separator=self.config.namespace_separator,
        )
        if name is None:
            name = self.manifests.read_canonical_name(path)
        return FrameworkComponent.from_manifests(namespace, name, source, path, self.manifests)

    def locate(self) -> List[FrameworkComponent]:
        """
        All components under the mirrors root, filtered by the configured
        component names or namespaces.

        Selection by namespace happens before any manifest is read, so an
        unselected mirror with a broken manifest is ignored. Selection by
        package name needs the manifest; a mirror whose manifest cannot be
        read is then ignored unless nothing is filtered.

        Raises:
            IdentityMismatchError: If a selected component's manifests disagree
        """
        wanted = self.config.components
        components = []
        for path in find_mirror_repos(self.config.mirrors_root):
            name = None
            if wanted and self.namespace_for(path) not in wanted:
                try:
                    name = self.manifests.read_canonical_name(path)
                except IdentityMismatchError as e:
                    logger.debug(f"Ignoring {path} (not selected): {e}")
                    continue
                if name not in wanted:
                    logger.debug(f"Ignoring {name} (not selected)")
                    continue

            component = self.component_for(path, name)
            logger.debug(f"Found {component.name} at {path} (namespace {component.namespace})")
            components.append(component)
        return components
