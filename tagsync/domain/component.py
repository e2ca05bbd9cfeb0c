"""
FrameworkComponent domain object for tagsync.

A component pairs a subtree of the monorepo with the mirror repository
that publishes it on its own. Both sides must declare the same canonical
package name in their manifest.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..exit_codes import IdentityMismatchError


@dataclass(frozen=True)
class FrameworkComponent:
    """
    A monorepo subtree and its mirror repository.

    Attributes:
        namespace: Namespace derived from the mirror's path (e.g., "Http")
        name: Canonical package name (e.g., "zendframework/zend-http")
        source_path: Subtree of the monorepo working copy
        target_path: Root of the mirror working copy
    """

    namespace: str
    name: str
    source_path: str
    target_path: str

    @classmethod
    def from_manifests(
        cls,
        namespace: str,
        name: str,
        source_path: str,
        target_path: str,
        manifest_reader,
    ) -> 'FrameworkComponent':
        """
        Build a component after checking both manifests declare ``name``.

        Args:
            namespace: Component namespace
            name: Expected canonical name
            source_path: Monorepo subtree path
            target_path: Mirror repository path
            manifest_reader: Object with ``read_canonical_name(path)``

        Raises:
            IdentityMismatchError: If either manifest declares another name
        """
        for path in (source_path, target_path):
            declared = manifest_reader.read_canonical_name(path)
            if declared != name:
                raise IdentityMismatchError(
                    f'"{path}" doesn\'t seem to contain component "{name}" '
                    f'(manifest declares "{declared}")'
                )

        return cls(
            namespace=str(namespace),
            name=str(name),
            source_path=str(source_path),
            target_path=str(target_path),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'namespace': self.namespace,
            'name': self.name,
            'source_path': self.source_path,
            'target_path': self.target_path,
        }

    def __str__(self) -> str:
        return self.name
