import enum
import os
from dataclasses import dataclass, field
from typing import List, Optional

from lofterfix.errors import ErrorKind, FailureKind


@dataclass(frozen=True)
class RepairTask:
    target_path: str
    reference_path: str

    @property
    def name(self) -> str:
        return os.path.basename(self.target_path)


@dataclass(frozen=True)
class RepairOptions:
    confidence: float = 0.5
    padding: float = 0.2

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.padding < 0.0:
            raise ValueError(f"padding must be >= 0, got {self.padding}")


class OutcomeStatus(str, enum.Enum):
    repaired = "repaired"
    skipped = "skipped"
    failed = "failed"


@dataclass(frozen=True)
class RepairOutcome:
    task: RepairTask
    status: OutcomeStatus
    kind: Optional[ErrorKind] = None
    reason: str = ""
    output_path: Optional[str] = None

    @classmethod
    def repaired(cls, task: RepairTask, output_path: str) -> "RepairOutcome":
        return cls(task=task, status=OutcomeStatus.repaired, output_path=output_path)

    @classmethod
    def skipped(cls, task: RepairTask, kind: ErrorKind, reason: str) -> "RepairOutcome":
        return cls(task=task, status=OutcomeStatus.skipped, kind=kind, reason=reason)

    @classmethod
    def failed(cls, task: RepairTask, kind: ErrorKind, reason: str) -> "RepairOutcome":
        return cls(task=task, status=OutcomeStatus.failed, kind=kind, reason=reason)

    @property
    def is_repaired(self) -> bool:
        return self.status is OutcomeStatus.repaired


@dataclass(frozen=True)
class BatchFailure:
    kind: FailureKind
    message: str


@dataclass
class BatchResult:
    outcomes: List[RepairOutcome] = field(default_factory=list)
    failure: Optional[BatchFailure] = None

    @property
    def count(self) -> int:
        return sum(1 for o in self.outcomes if o.is_repaired)

    @property
    def first_path(self) -> Optional[str]:
        for outcome in self.outcomes:
            if outcome.is_repaired:
                return outcome.output_path
        return None

    @property
    def ok(self) -> bool:
        return self.failure is None
