"""
Pipeline value types and the listing source interface
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Dict, Any, Optional
import enum


class RunState(str, enum.Enum):
    """JobRunner lifecycle"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class BatchCursor:
    """
    Progress through one run's paginated extraction.

    offset counts records consumed this run; watermark is the store's max
    last_updated at run start (None for an empty store). Created once per
    run and discarded when the run ends.
    """
    offset: int = 0
    watermark: Optional[datetime] = None

    def advance(self, count: int) -> "BatchCursor":
        return replace(self, offset=self.offset + count)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one page request; failures are values, not exceptions"""
    success: bool
    count: int = 0
    records: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_next(self) -> bool:
        return self.next_cursor is not None

    @classmethod
    def failed(cls, error: str) -> "BatchResult":
        return cls(success=False, count=0, records=[], error=error)


@dataclass(frozen=True)
class RunResult:
    """Aggregate of one JobRunner execution"""
    processed: int = 0
    saved: int = 0
    errors: int = 0

    @property
    def success(self) -> bool:
        return self.errors == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "processed": self.processed,
            "saved": self.saved,
            "errors": self.errors,
        }


class ListingSource(ABC):
    """
    Abstract paginated listing source.

    Implementations must not raise for transport or format problems; they
    return ``BatchResult.failed(...)`` and let the runner decide.
    """

    @abstractmethod
    async def fetch_batch(
        self,
        limit: int,
        offset: int,
        watermark: Optional[datetime] = None
    ) -> BatchResult:
        """
        Fetch one page of listings.

        Args:
            limit: Page size
            offset: Records to skip (stable order by natural key)
            watermark: Only records modified after this instant

        Returns:
            BatchResult with success flag, records and next-page pointer
        """
        pass

    @abstractmethod
    async def fetch_by_mls_number(self, mls_number: str) -> Optional[Dict[str, Any]]:
        """Raw record for one listing id; None when absent or unreachable"""
        pass
