from __future__ import annotations

from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.auth import Principal
from app.core.config import settings
from app.core.errors import NotFound
from app.db.filters import BidFilter
from app.db.models import Bid, BidStatus, Booking, BookingStatus, Job, Review, User, WorkerProfile
from app.db.store import load_job
from app.domain.authorization import Operation, Ownership, authorize

_BID_COLUMNS = tuple(Bid.__table__.columns)


def _worker_rating(worker_id_col):
    return select(func.avg(Review.rating)).where(Review.reviewee_id == worker_id_col).scalar_subquery()


def _worker_review_count(worker_id_col):
    return select(func.count(Review.id)).where(Review.reviewee_id == worker_id_col).scalar_subquery()


def _worker_completed_jobs(worker_id_col):
    return (
        select(func.count(Booking.id))
        .where(Booking.worker_id == worker_id_col, Booking.status == BookingStatus.COMPLETED)
        .scalar_subquery()
    )


async def list_bids_for_job(session: AsyncSession, *, principal: Principal, job_id: str) -> list[dict[str, Any]]:
    """All bids on an owned job, actionable ones first.

    Pending bids come before accepted ones, then everything else; within a
    group the newest bid is first.
    """
    status_rank = case(
        (Bid.status == BidStatus.PENDING, 1),
        (Bid.status == BidStatus.ACCEPTED, 2),
        else_=3,
    )

    async with session.begin():
        job = await load_job(session, job_id)
        authorize(principal, Operation.LIST_JOB_BIDS, Ownership(customer_id=job.customer_id))

        stmt = (
            select(
                *_BID_COLUMNS,
                User.full_name.label("worker_name"),
                User.email.label("worker_email"),
                User.phone.label("worker_phone"),
                User.profile_picture.label("profile_picture"),
                WorkerProfile.bio.label("bio"),
                WorkerProfile.hourly_rate.label("hourly_rate"),
                _worker_rating(User.id).label("rating"),
                _worker_review_count(User.id).label("total_reviews"),
                _worker_completed_jobs(User.id).label("total_jobs_completed"),
            )
            .join(User, Bid.worker_id == User.id)
            .outerjoin(WorkerProfile, WorkerProfile.user_id == Bid.worker_id)
            .where(*BidFilter(job_id=job.id).clauses())
            .order_by(status_rank, Bid.created_at.desc())
        )
        res = await session.execute(stmt)
        return [dict(row) for row in res.mappings().all()]


async def list_my_bids(
    session: AsyncSession,
    *,
    principal: Principal,
    status: BidStatus | None = None,
) -> list[dict[str, Any]]:
    authorize(principal, Operation.LIST_MY_BIDS)
    customer = aliased(User)

    stmt = (
        select(
            *_BID_COLUMNS,
            Job.title.label("job_title"),
            Job.description.label("job_description"),
            Job.budget_min.label("budget_min"),
            Job.budget_max.label("budget_max"),
            Job.location_address.label("location"),
            Job.city.label("city"),
            Job.province.label("province"),
            Job.status.label("job_status"),
            Job.images.label("job_images"),
            customer.full_name.label("customer_name"),
            customer.phone.label("customer_phone"),
        )
        .join(Job, Bid.job_id == Job.id)
        .join(customer, Job.customer_id == customer.id)
        .where(*BidFilter(worker_id=principal.id, status=status).clauses())
        .order_by(Bid.created_at.desc())
    )
    async with session.begin():
        res = await session.execute(stmt)
        rows = [dict(row) for row in res.mappings().all()]

    if not settings.expose_customer_phone_before_acceptance:
        for row in rows:
            if row["status"] != BidStatus.ACCEPTED:
                row["customer_phone"] = None
    return rows


async def get_bid(session: AsyncSession, *, principal: Principal, bid_id: str) -> dict[str, Any]:
    worker = aliased(User)
    stmt = (
        select(
            *_BID_COLUMNS,
            Job.title.label("job_title"),
            Job.description.label("job_description"),
            Job.customer_id.label("customer_id"),
            worker.full_name.label("worker_name"),
            worker.profile_picture.label("profile_picture"),
            _worker_rating(worker.id).label("rating"),
            _worker_review_count(worker.id).label("total_reviews"),
        )
        .join(Job, Bid.job_id == Job.id)
        .join(worker, Bid.worker_id == worker.id)
        .where(Bid.id == bid_id)
    )
    async with session.begin():
        res = await session.execute(stmt)
        row = res.mappings().one_or_none()

    if row is None:
        raise NotFound("Bid not found")
    authorize(principal, Operation.VIEW_BID, Ownership(customer_id=row["customer_id"], worker_id=row["worker_id"]))
    return dict(row)
