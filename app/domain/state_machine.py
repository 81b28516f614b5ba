from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Set, Union

from app.db.models import BidStatus, JobStatus

_JOB_ALLOWED: Dict[JobStatus, Set[JobStatus]] = {
    JobStatus.OPEN: {JobStatus.ASSIGNED, JobStatus.CANCELLED},
    JobStatus.ASSIGNED: {JobStatus.COMPLETED, JobStatus.CANCELLED},
    JobStatus.COMPLETED: set(),
    JobStatus.CANCELLED: set(),
}

# withdrawal deletes a pending bid, so it has no target state here
_BID_ALLOWED: Dict[BidStatus, Set[BidStatus]] = {
    BidStatus.PENDING: {BidStatus.ACCEPTED, BidStatus.REJECTED},
    BidStatus.ACCEPTED: set(),
    BidStatus.REJECTED: set(),
}

Status = Union[JobStatus, BidStatus]

@dataclass(frozen=True)
class TransitionError(Exception):
    from_status: Status
    to_status: Status
    def __str__(self) -> str:
        return f"invalid transition: {self.from_status.value} -> {self.to_status.value}"

def ensure_transition_allowed(from_status: JobStatus, to_status: JobStatus) -> None:
    allowed = _JOB_ALLOWED.get(from_status, set())
    if to_status not in allowed:
        raise TransitionError(from_status=from_status, to_status=to_status)

def ensure_bid_transition_allowed(from_status: BidStatus, to_status: BidStatus) -> None:
    allowed = _BID_ALLOWED.get(from_status, set())
    if to_status not in allowed:
        raise TransitionError(from_status=from_status, to_status=to_status)
