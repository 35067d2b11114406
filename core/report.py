import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

SUCCESS = 'success'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass
class UnitResult:
    """Outcome of one unit of work (a photo, an itinerary, a travel, an upload)"""

    unit: str
    status: str
    reason: str | None = None
    value: Any = None

    @classmethod
    def success(cls, unit: str, value: Any = None) -> 'UnitResult':
        return cls(unit=unit, status=SUCCESS, value=value)

    @classmethod
    def skipped(cls, unit: str, reason: str) -> 'UnitResult':
        return cls(unit=unit, status=SKIPPED, reason=reason)

    @classmethod
    def failed(cls, unit: str, reason: str) -> 'UnitResult':
        return cls(unit=unit, status=FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


@dataclass
class RunReport:
    """Collects unit results for one command so failures are visible after the run"""

    name: str
    results: list[UnitResult] = field(default_factory=list)

    def add(self, result: UnitResult) -> UnitResult:
        self.results.append(result)
        return result

    def extend(self, other: 'RunReport') -> None:
        self.results.extend(other.results)

    def by_status(self, status: str) -> list[UnitResult]:
        return [r for r in self.results if r.status == status]

    def counts(self) -> dict:
        return {status: len(self.by_status(status)) for status in (SUCCESS, SKIPPED, FAILED)}

    def log_summary(self) -> None:
        counts = self.counts()
        logger.info(
            f"{self.name}: {counts[SUCCESS]} succeeded, {counts[SKIPPED]} skipped, {counts[FAILED]} failed"
        )
        for result in self.by_status(FAILED):
            logger.error(f"  - {result.unit}: {result.reason}")
        for result in self.by_status(SKIPPED):
            logger.debug(f"  - skipped {result.unit}: {result.reason}")
