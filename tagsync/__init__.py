"""
tagsync - Keep per-component mirror repositories in step with a monorepo.

tagsync replays monorepo history commit by commit into one mirror
repository per component and stamps matching release tags, so each
mirror's tagged state is byte-identical to the monorepo subtree at the
same tag.

Quick Start:
    from tagsync import load_config, load_sync_config, SyncService

    config = load_sync_config(load_config("tagsync.yaml"))
    service = SyncService(config)

    for progress in service.run():
        print(progress)

    print(service.last_result.to_dict())

Domain Objects:
    Commit - Monorepo revision (hash, timestamp)
    FrameworkComponent - Monorepo subtree paired with its mirror
    ReleaseTag - Destination tag with provenance message

Services:
    ComponentLocator - Mirror discovery and namespace mapping
    CommitHistoryReader - Commits touching a subtree
    Importer - Commit replay
    Tagger - Release tagging
    Verifier - Subtree/mirror identity check
    Publisher - Push branch and tag
    SyncService - The staged pipeline over all components
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    Commit,
    FrameworkComponent,
    ReleaseTag,
    StageStatus,
    ComponentResult,
    SyncSummary,
)

# Services
from .services import (
    ComponentLocator,
    CommitHistoryReader,
    Importer,
    Tagger,
    Verifier,
    Publisher,
    SyncService,
)

# Errors
from .exit_codes import (
    SyncError,
    ConfigurationError,
    IdentityMismatchError,
    MalformedCommitRecord,
    ConsistencyError,
    DelegatedToolFailure,
)

# Configuration
from .config import load_config, load_sync_config, SyncConfig

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "Commit",
    "FrameworkComponent",
    "ReleaseTag",
    "StageStatus",
    "ComponentResult",
    "SyncSummary",
    # Services
    "ComponentLocator",
    "CommitHistoryReader",
    "Importer",
    "Tagger",
    "Verifier",
    "Publisher",
    "SyncService",
    # Errors
    "SyncError",
    "ConfigurationError",
    "IdentityMismatchError",
    "MalformedCommitRecord",
    "ConsistencyError",
    "DelegatedToolFailure",
    # Configuration
    "load_config",
    "load_sync_config",
    "SyncConfig",
]
