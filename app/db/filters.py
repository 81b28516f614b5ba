"""Structured list filters translated to SQLAlchemy clauses."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import func

from app.db.models import Bid, BidStatus, Job, JobStatus


@dataclass(frozen=True)
class BidFilter:
    worker_id: Optional[str] = None
    job_id: Optional[str] = None
    status: Optional[BidStatus] = None

    def clauses(self) -> List[Any]:
        out: List[Any] = []
        if self.worker_id is not None:
            out.append(Bid.worker_id == self.worker_id)
        if self.job_id is not None:
            out.append(Bid.job_id == self.job_id)
        if self.status is not None:
            out.append(Bid.status == self.status)
        return out


@dataclass(frozen=True)
class JobFilter:
    """Job predicates. City and province match case-insensitively.

    ``min_budget``/``max_budget`` select jobs whose budget range overlaps
    the requested one.
    """

    customer_id: Optional[str] = None
    status: Optional[JobStatus] = None
    city: Optional[str] = None
    province: Optional[str] = None
    min_budget: Optional[Decimal] = None
    max_budget: Optional[Decimal] = None

    def clauses(self) -> List[Any]:
        out: List[Any] = []
        if self.customer_id is not None:
            out.append(Job.customer_id == self.customer_id)
        if self.status is not None:
            out.append(Job.status == self.status)
        if self.city:
            out.append(func.lower(Job.city) == self.city.lower())
        if self.province:
            out.append(func.lower(Job.province) == self.province.lower())
        if self.min_budget is not None:
            out.append(Job.budget_max >= self.min_budget)
        if self.max_budget is not None:
            out.append(Job.budget_min <= self.max_budget)
        return out
