"""
Release tag domain object for tagsync.

A ReleaseTag is what the Tagger stamps on a mirror: the destination tag
name and an annotation recording which monorepo commit the tagged state
came from.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .commit import Commit


@dataclass(frozen=True)
class ReleaseTag:
    """
    Annotated tag with provenance.

    Examples:
        ReleaseTag.for_component("v1", component, Commit("b" * 40, 200))
            -> ReleaseTag(name="v1", message="vendor/foo@bbb... (200)", ...)

    Attributes:
        name: Tag name, identical in the monorepo and the mirror
        message: Annotation, ``<canonicalName>@<hash> (<timestamp>)``
        commit: Monorepo commit the annotation refers to
    """

    name: str
    message: str
    commit: Commit

    @classmethod
    def for_component(cls, name: str, component, commit: Commit) -> 'ReleaseTag':
        """Build the tag for a component from its latest subtree commit."""
        return cls(
            name=name,
            message=commit.provenance(component.name),
            commit=commit,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'message': self.message,
            'commit': self.commit.to_dict(),
        }

    def __str__(self) -> str:
        return self.name
