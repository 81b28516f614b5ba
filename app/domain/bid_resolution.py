"""Accepting and rejecting bids.

Accepting is the one multi-row transition in the marketplace: the winning
bid, every competing pending bid, the job and a new booking all change in
one transaction, and the affected workers are notified before it commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.errors import Conflict
from app.core.notifications import write_notification
from app.db.models import Bid, Booking, BookingStatus, BidStatus, Job, JobStatus, NotificationType
from app.db.store import lock_bid_with_job
from app.domain.authorization import Operation, Ownership, authorize
from app.domain.job_service import transition_job
from app.domain.state_machine import TransitionError, ensure_bid_transition_allowed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptResult:
    bid: Bid
    booking: Booking
    rejected_bids: list[Bid]


def _ensure_pending(bid: Bid, to_status: BidStatus) -> None:
    try:
        ensure_bid_transition_allowed(bid.status, to_status)
    except TransitionError as exc:
        raise Conflict(f"This bid has already been {bid.status.value}") from exc


async def _load_for_resolution(
    session: AsyncSession, principal: Principal, bid_id: str, operation: Operation, to_status: BidStatus
) -> tuple[Bid, Job]:
    bid, job = await lock_bid_with_job(session, bid_id)
    authorize(principal, operation, Ownership(customer_id=job.customer_id, worker_id=bid.worker_id))
    _ensure_pending(bid, to_status)
    return bid, job


async def accept_bid(session: AsyncSession, *, principal: Principal, bid_id: str) -> AcceptResult:
    authorize(principal, Operation.ACCEPT_BID)

    async with session.begin():
        bid, job = await _load_for_resolution(session, principal, bid_id, Operation.ACCEPT_BID, BidStatus.ACCEPTED)

        try:
            transition_job(job, JobStatus.ASSIGNED)
        except TransitionError as exc:
            raise Conflict(f"This job is already {job.status.value}") from exc

        bid.status = BidStatus.ACCEPTED

        res = await session.execute(
            select(Bid)
            .where(Bid.job_id == job.id, Bid.id != bid.id, Bid.status == BidStatus.PENDING)
            .with_for_update()
        )
        competitors = list(res.scalars().all())
        for other in competitors:
            other.status = BidStatus.REJECTED

        booking = Booking(
            job_id=job.id,
            customer_id=principal.id,
            worker_id=bid.worker_id,
            agreed_price=bid.amount,
            status=BookingStatus.CONFIRMED,
        )
        session.add(booking)
        try:
            await session.flush()
        except IntegrityError as exc:
            # bookings.job_id is unique: another acceptance got there first
            raise Conflict("This job already has a booking") from exc

        await write_notification(
            session,
            user_id=bid.worker_id,
            type=NotificationType.BID_ACCEPTED,
            title="Your Bid Was Accepted!",
            message=f'Congratulations! Your bid of ${bid.amount} for "{job.title}" was accepted',
            related_id=booking.id,
        )
        # only the bids cascaded just now; earlier rejections were already notified
        for other in competitors:
            await write_notification(
                session,
                user_id=other.worker_id,
                type=NotificationType.BID_REJECTED,
                title="Bid Not Accepted",
                message=f'Your bid for "{job.title}" was not accepted. The customer has chosen another worker.',
                related_id=other.id,
            )

    logger.info(
        f"bid accepted | bid={bid.id} | job={job.id} | booking={booking.id} | cascaded={len(competitors)}"
    )
    return AcceptResult(bid=bid, booking=booking, rejected_bids=competitors)


async def reject_bid(session: AsyncSession, *, principal: Principal, bid_id: str) -> Bid:
    authorize(principal, Operation.REJECT_BID)

    async with session.begin():
        bid, job = await _load_for_resolution(session, principal, bid_id, Operation.REJECT_BID, BidStatus.REJECTED)

        bid.status = BidStatus.REJECTED
        await session.flush()

        await write_notification(
            session,
            user_id=bid.worker_id,
            type=NotificationType.BID_REJECTED,
            title="Bid Not Accepted",
            message=f'Your bid for "{job.title}" was not accepted by the customer.',
            related_id=bid.id,
        )

    logger.info(f"bid rejected | bid={bid.id} | job={job.id}")
    return bid
