from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.errors import Conflict, InvalidRequest, NotFound
from app.db.filters import JobFilter
from app.db.models import ACTIVE_BOOKING_STATUSES, Bid, BidStatus, Booking, Job, JobStatus, Review, User
from app.db.store import load_job
from app.domain.authorization import Operation, Ownership, authorize
from app.domain.money import ensure_storable
from app.domain.state_machine import TransitionError, ensure_transition_allowed

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "budget_min", "budget_max", "location_address", "city", "province")


@dataclass
class JobDraft:
    title: str
    description: str
    budget_min: Decimal
    budget_max: Decimal
    location_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    images: Optional[list[str]] = None


def transition_job(job: Job, to_status: JobStatus) -> None:
    from_status = job.status
    ensure_transition_allowed(from_status, to_status)
    job.status = to_status
    logger.info(f"job status | job={job.id} | {from_status.value} -> {to_status.value}")


def _validate_budget(budget_min: Decimal, budget_max: Decimal) -> None:
    if budget_min <= 0 or budget_max <= 0:
        raise InvalidRequest("Budget values must be greater than 0", field="budget_min")
    ensure_storable(budget_min, field="budget_min", label="Minimum budget")
    ensure_storable(budget_max, field="budget_max", label="Maximum budget")
    if budget_min > budget_max:
        raise InvalidRequest("Minimum budget cannot exceed maximum budget", field="budget_max")


def _bid_counts():
    total = select(func.count(Bid.id)).where(Bid.job_id == Job.id).correlate(Job).scalar_subquery()
    pending = (
        select(func.count(Bid.id))
        .where(Bid.job_id == Job.id, Bid.status == BidStatus.PENDING)
        .correlate(Job)
        .scalar_subquery()
    )
    return total.label("bids_count"), pending.label("pending_bids")


def _job_row(job: Job, **extra: Any) -> dict[str, Any]:
    row = {c.key: getattr(job, c.key) for c in Job.__table__.columns}
    row.update(extra)
    return row


def _customer_rating():
    return (
        select(func.avg(Review.rating))
        .where(Review.reviewee_id == Job.customer_id)
        .correlate(Job)
        .scalar_subquery()
        .label("customer_rating")
    )


@dataclass
class JobPage:
    items: list[dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


async def _job_page(session: AsyncSession, job_filter: JobFilter, page: int, limit: int) -> JobPage:
    bids_count, pending_bids = _bid_counts()
    clauses = job_filter.clauses()
    stmt = (
        select(Job, bids_count, pending_bids, User.full_name.label("customer_name"))
        .outerjoin(User, User.id == Job.customer_id)
        .where(*clauses)
        .order_by(Job.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    async with session.begin():
        total = (await session.execute(select(func.count(Job.id)).where(*clauses))).scalar_one()
        rows = (await session.execute(stmt)).all()

    items = [
        _job_row(job, bids_count=count, pending_bids=pending, customer_name=name)
        for job, count, pending, name in rows
    ]
    return JobPage(items=items, total=total, page=page, limit=limit)


async def create_job(session: AsyncSession, *, principal: Principal, draft: JobDraft) -> Job:
    authorize(principal, Operation.POST_JOB)
    if not principal.is_verified:
        raise InvalidRequest("Please verify your phone number first.")
    if not draft.title.strip() or not draft.description.strip():
        raise InvalidRequest("Title and description are required", field="title")
    _validate_budget(draft.budget_min, draft.budget_max)

    async with session.begin():
        job = Job(
            customer_id=principal.id,
            status=JobStatus.OPEN,
            title=draft.title.strip(),
            description=draft.description,
            budget_min=draft.budget_min,
            budget_max=draft.budget_max,
            location_address=draft.location_address,
            city=draft.city,
            province=draft.province,
            images=list(draft.images or []),
        )
        session.add(job)
        await session.flush()

    logger.info(f"job created | job={job.id} | customer={principal.id}")
    return job


async def get_job(session: AsyncSession, *, job_id: str) -> dict[str, Any]:
    bids_count, pending_bids = _bid_counts()
    stmt = (
        select(Job, bids_count, pending_bids, User.full_name.label("customer_name"), _customer_rating())
        .outerjoin(User, User.id == Job.customer_id)
        .where(Job.id == job_id)
    )
    async with session.begin():
        row = (await session.execute(stmt)).one_or_none()
    if row is None:
        raise NotFound("Job not found")
    job, total, pending, customer_name, customer_rating = row
    return _job_row(
        job,
        bids_count=total,
        pending_bids=pending,
        customer_name=customer_name,
        customer_rating=customer_rating,
    )


async def list_jobs(
    session: AsyncSession,
    *,
    job_filter: JobFilter | None = None,
    page: int = 1,
    limit: int = 10,
) -> JobPage:
    """Public browse, newest first. Defaults to open jobs."""
    job_filter = job_filter or JobFilter(status=JobStatus.OPEN)
    return await _job_page(session, job_filter, page, limit)


async def list_my_jobs(
    session: AsyncSession,
    *,
    principal: Principal,
    status: JobStatus | None = None,
    page: int = 1,
    limit: int = 10,
) -> JobPage:
    return await _job_page(session, JobFilter(customer_id=principal.id, status=status), page, limit)


async def update_job(session: AsyncSession, *, principal: Principal, job_id: str, changes: dict[str, Any]) -> Job:
    """Apply the provided fields to an owned job that has no accepted bid yet."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidRequest(f"Field cannot be edited: {sorted(unknown)[0]}", field=sorted(unknown)[0])

    async with session.begin():
        job = await load_job(session, job_id, for_update=True)
        authorize(principal, Operation.EDIT_JOB, Ownership(customer_id=job.customer_id))

        accepted = await session.execute(
            select(Bid.id).where(Bid.job_id == job.id, Bid.status == BidStatus.ACCEPTED).limit(1)
        )
        if accepted.scalar_one_or_none() is not None:
            raise Conflict("Cannot edit job with accepted bids")

        _validate_budget(
            changes.get("budget_min", job.budget_min),
            changes.get("budget_max", job.budget_max),
        )
        for key, value in changes.items():
            setattr(job, key, value)
        await session.flush()

    logger.info(f"job updated | job={job.id} | fields={sorted(changes)}")
    return job


async def cancel_job(session: AsyncSession, *, principal: Principal, job_id: str) -> Job:
    async with session.begin():
        job = await load_job(session, job_id, for_update=True)
        authorize(principal, Operation.CANCEL_JOB, Ownership(customer_id=job.customer_id))

        active = await session.execute(
            select(Booking.id)
            .where(Booking.job_id == job.id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
            .limit(1)
        )
        if active.scalar_one_or_none() is not None:
            raise Conflict("Cannot cancel job with active bookings")

        try:
            transition_job(job, JobStatus.CANCELLED)
        except TransitionError as exc:
            raise Conflict(f"This job is already {job.status.value}") from exc
        await session.flush()

    return job
