"""
Pydantic schemas for check results and run reports.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckResult(BaseModel):
    """Outcome of a single validation check."""
    name: str
    category: str
    passed: bool
    details: Optional[str] = None
    # Only set on failures
    risk: Optional[str] = None
    recommendation: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class ResultSet:
    """Append-only, ordered collection of check results for one suite run."""

    def __init__(self):
        self._results: list[CheckResult] = []
        self._sealed = False

    def append(self, result: CheckResult) -> None:
        if self._sealed:
            raise RuntimeError("ResultSet is sealed; the run that owned it has completed")
        self._results.append(result)

    def seal(self) -> None:
        self._sealed = True

    @property
    def results(self) -> tuple[CheckResult, ...]:
        return tuple(self._results)

    @property
    def total(self) -> int:
        return len(self._results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self._results if r.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self._results if not r.passed)

    def failures(self) -> list[CheckResult]:
        return [r for r in self._results if not r.passed]

    def by_category(self) -> dict[str, list[CheckResult]]:
        """Results grouped by category, in first-seen category order."""
        groups: dict[str, list[CheckResult]] = {}
        for result in self._results:
            groups.setdefault(result.category, []).append(result)
        return groups

    def __len__(self) -> int:
        return len(self._results)


class SuiteStatus(str, Enum):
    """Suite-level verdict."""
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class SuiteResult(BaseModel):
    """Overall state of one named suite within a run."""
    name: str
    status: SuiteStatus
    timestamp: datetime = Field(default_factory=utcnow)
    reason: Optional[str] = None
    results: list[CheckResult] = []

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.passed)


class CategoryCounts(BaseModel):
    """Per-category counters."""
    total: int = 0
    passed: int = 0
    failed: int = 0


class RunSummary(BaseModel):
    """Aggregate counts for a run."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    by_category: dict[str, CategoryCounts] = {}
    suites_skipped: list[str] = []


class RunReport(BaseModel):
    """Complete validation run, as exported to disk."""
    run_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    success: bool = False
    summary: RunSummary = Field(default_factory=RunSummary)
    suites: list[SuiteResult] = []

    @property
    def results(self) -> list[CheckResult]:
        return [r for suite in self.suites for r in suite.results]

    @property
    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if not r.passed]
