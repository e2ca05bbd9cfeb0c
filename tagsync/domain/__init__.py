"""
Domain layer for tagsync.

Contains pure domain objects with no I/O or side effects:
- Commit: A monorepo revision (hash, timestamp)
- FrameworkComponent: A monorepo subtree paired with its mirror repository
- ReleaseTag: Destination tag with provenance annotation
- ComponentResult / SyncSummary: Outcome of a sync run

These objects are immutable where possible and provide
serialization methods for JSON output.
"""

from .commit import Commit
from .component import FrameworkComponent
from .tag import ReleaseTag
from .operation import StageStatus, ComponentResult, SyncSummary

__all__ = [
    'Commit',
    'FrameworkComponent',
    'ReleaseTag',
    'StageStatus',
    'ComponentResult',
    'SyncSummary',
]
