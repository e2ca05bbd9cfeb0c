"""
Infrastructure layer for tagsync.

Contains abstractions for external systems:
- GitClient: Git command execution
- DirectorySync / RsyncDirectorySync: Directory mirroring
- ManifestReader: Canonical package names from manifests
- diff_trees: Recursive content diff

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitIdentity
from .directory_sync import DirectorySync, RsyncDirectorySync, create_directory_sync
from .manifest_reader import ManifestReader
from .tree_diff import diff_trees

__all__ = [
    'GitClient',
    'GitIdentity',
    'DirectorySync',
    'RsyncDirectorySync',
    'create_directory_sync',
    'ManifestReader',
    'diff_trees',
]
