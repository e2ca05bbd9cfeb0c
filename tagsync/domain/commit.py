"""
Commit domain object for tagsync.

A Commit identifies one monorepo revision by its full hash and its
commit timestamp. Commits are validated on construction and never
change afterwards.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict

from ..exit_codes import MalformedCommitRecord

HASH_LENGTH = 40
RECORD_SEPARATOR = ':'

_HEX = re.compile(r'^[0-9a-fA-F]+$')


@dataclass(frozen=True)
class Commit:
    """
    Immutable monorepo revision.

    Examples:
        Commit("a" * 40, 100)                   -> valid
        Commit("abc", 100)                      -> MalformedCommitRecord
        Commit.parse("100:" + "a" * 40)         -> Commit(hash="aaa...", timestamp=100)

    Attributes:
        hash: Full 40 character hexadecimal commit id
        timestamp: Commit time in seconds since the epoch
    """

    hash: str
    timestamp: int

    def __post_init__(self):
        # bool is an int subclass, but True is not a timestamp
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise MalformedCommitRecord(
                f'Given time is not an integer, "{type(self.timestamp).__name__}" given'
            )

        if (
            not isinstance(self.hash, str)
            or len(self.hash) != HASH_LENGTH
            or not _HEX.match(self.hash)
        ):
            raise MalformedCommitRecord(f'Invalid hash "{self.hash}" provided')

    @classmethod
    def parse(cls, record: str) -> 'Commit':
        """
        Decode a ``timestamp:hash`` record as produced by
        ``git log --format=%ct:%H``.

        Args:
            record: Raw log line

        Returns:
            Validated Commit

        Raises:
            MalformedCommitRecord: If the record cannot be decoded
        """
        record = record.strip()
        if RECORD_SEPARATOR not in record:
            raise MalformedCommitRecord(f'Malformed log record "{record}"')

        raw_time, raw_hash = record.split(RECORD_SEPARATOR, 1)
        try:
            timestamp = int(raw_time)
        except ValueError:
            raise MalformedCommitRecord(
                f'Given time is not an integer, "{raw_time}" given'
            ) from None

        return cls(hash=raw_hash, timestamp=timestamp)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    def provenance(self, origin: str) -> str:
        """Render as ``<origin>@<hash> (<timestamp>)``."""
        return f"{origin}@{self.hash} ({self.timestamp})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'hash': self.hash,
            'timestamp': self.timestamp,
        }

    def __str__(self) -> str:
        return f"{self.hash} ({self.timestamp})"
