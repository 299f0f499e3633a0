"""Core types for repository scanning."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any

# Branch name reported when HEAD does not point at a named branch
DETACHED = "DETACHED"


class SyncState(Enum):
    """Sync state of a local branch relative to its upstream."""
    UP_TO_DATE = "up-to-date"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    NO_UPSTREAM = "no-upstream"
    DETACHED = "detached"


class OutputMode(Enum):
    """How scan results are handed back to the caller."""
    STREAMING = "streaming"
    AGGREGATE = "aggregate"


@dataclass(frozen=True)
class RepositoryStatus:
    """Evaluation result for a single repository.

    Instances are produced by the evaluator and never mutated afterwards.
    """
    path: str
    branch: str
    state: SyncState
    dirty: bool = False
    stashed: bool = False
    ahead: int = 0
    behind: int = 0
    upstream: str = ""

    @property
    def detached(self) -> bool:
        """Check if HEAD is detached."""
        return self.branch == DETACHED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Field names and order match the JSON output format.
        """
        data = asdict(self)
        return {
            'path': data['path'],
            'branch': data['branch'],
            'state': self.state.value,
            'dirty': data['dirty'],
            'stashed': data['stashed'],
            'ahead': data['ahead'],
            'behind': data['behind'],
            'upstream': data['upstream'],
        }
