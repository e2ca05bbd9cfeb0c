"""
Operation result domain objects for tagsync.

Provides standardized result types for the per-component stages of a
sync run and the summary the CLI reports at the end.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .component import FrameworkComponent


class StageStatus(Enum):
    """Status of a component after a sync run."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    DRY_RUN = "dry_run"


@dataclass
class ComponentResult:
    """
    What happened to one component during a sync run.

    ``action`` records the last stage the component completed, e.g.
    "imported", "tagged", "verified", "published", "up_to_date".
    """
    component: FrameworkComponent
    status: StageStatus
    action: str
    commits_replayed: int = 0
    tag: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'name': self.component.name,
            'namespace': self.component.namespace,
            'path': self.component.target_path,
            'status': self.status.value,
            'action': self.action,
            'commits_replayed': self.commits_replayed,
        }
        if self.tag:
            result['tag'] = self.tag
        if self.message:
            result['message'] = self.message
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class SyncSummary:
    """
    Summary of a sync run across all components.

    Collects statistics and details from every stage.
    """
    operation: str = "sync"
    tag: Optional[str] = None
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    dry_run: bool = False
    details: List[ComponentResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no failures occurred."""
        return self.failed == 0

    def add_detail(self, detail: ComponentResult) -> None:
        """Add a component result and update counts."""
        self.details.append(detail)
        self.total += 1

        if detail.status == StageStatus.SUCCESS:
            self.successful += 1
        elif detail.status == StageStatus.SKIPPED:
            self.skipped += 1
        elif detail.status == StageStatus.FAILED:
            self.failed += 1
            if detail.error:
                self.errors.append(f"{detail.component.name}: {detail.error}")
        elif detail.status == StageStatus.DRY_RUN:
            self.successful += 1  # Count dry-run as successful

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'operation': self.operation,
            'tag': self.tag,
            'total': self.total,
            'successful': self.successful,
            'skipped': self.skipped,
            'failed': self.failed,
            'dry_run': self.dry_run,
            'errors': self.errors,
        }
