"""
Service layer for tagsync.

Contains the sync engine, orchestrating domain objects and infrastructure:
- ComponentLocator: Discovers mirrors and their monorepo subtrees
- CommitHistoryReader: Commits touching a subtree
- Importer: Replays commits into a mirror
- Tagger: Stamps the destination tag
- Verifier: Confirms mirror and subtree are identical
- Publisher: Pushes branch and tag
- SyncService: Runs the stages above over all components
- MirrorBootstrapper: Clones the monorepo and missing mirrors

Services are the primary API for commands to use.
"""

from .locator import ComponentLocator, extract_namespace, source_path_for
from .history import CommitHistoryReader, decode_log_record
from .importer import Importer
from .tagger import Tagger
from .verifier import Verifier
from .publisher import Publisher
from .sync_service import SyncService
from .bootstrap import MirrorBootstrapper

__all__ = [
    'ComponentLocator',
    'extract_namespace',
    'source_path_for',
    'CommitHistoryReader',
    'decode_log_record',
    'Importer',
    'Tagger',
    'Verifier',
    'Publisher',
    'SyncService',
    'MirrorBootstrapper',
]
