from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.config import settings
from app.core.errors import Conflict, InvalidRequest
from app.core.notifications import write_notification
from app.db.models import Bid, BidStatus, JobStatus, NotificationType, WorkerProfile
from app.db.store import load_job
from app.domain.authorization import Operation, authorize
from app.domain.money import ensure_storable

logger = logging.getLogger(__name__)

DUPLICATE_BID = "You have already placed a bid on this job"


def _validate_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidRequest("Bid amount must be a number", field="bid_amount")
    if not value.is_finite() or value <= 0:
        raise InvalidRequest("Bid amount must be greater than 0", field="bid_amount")
    return ensure_storable(value, field="bid_amount", label="Bid amount")


def is_duplicate_bid(exc: IntegrityError) -> bool:
    # postgres names the constraint, sqlite names the columns
    msg = str(exc.orig)
    return "uq_bids_job_worker" in msg or "bids.job_id, bids.worker_id" in msg


def _validate_proposal(proposal: str) -> str:
    min_len = settings.min_proposal_length
    if len((proposal or "").strip()) < min_len:
        raise InvalidRequest(f"Proposal must be at least {min_len} characters long", field="proposal")
    return proposal


async def place_bid(
    session: AsyncSession,
    *,
    principal: Principal,
    job_id: str,
    amount,
    proposal: str,
    estimated_duration: str | None = None,
) -> Bid:
    """Record a pending bid from ``principal`` on an open job.

    Checks run in a fixed order and the first failure wins. Everything
    from the job lookup to the insert happens under the job row lock.
    """
    authorize(principal, Operation.PLACE_BID)
    value = _validate_amount(amount)
    proposal = _validate_proposal(proposal)

    async with session.begin():
        job = await load_job(session, job_id, for_update=True)

        if job.customer_id == principal.id:
            raise Conflict("You cannot bid on your own job")
        if job.status != JobStatus.OPEN:
            raise Conflict("This job is no longer accepting bids")

        existing = await session.execute(
            select(Bid.id).where(Bid.job_id == job.id, Bid.worker_id == principal.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict(DUPLICATE_BID)

        if await session.get(WorkerProfile, principal.id) is None:
            raise Conflict("Please complete your worker profile before placing bids")

        bid = Bid(
            job_id=job.id,
            worker_id=principal.id,
            amount=value,
            proposal=proposal,
            estimated_duration=estimated_duration or None,
            status=BidStatus.PENDING,
        )
        session.add(bid)
        try:
            await session.flush()
        except IntegrityError as exc:
            if not is_duplicate_bid(exc):
                raise
            # lost a race against a concurrent bid from the same worker
            raise Conflict(DUPLICATE_BID) from exc

        await write_notification(
            session,
            user_id=job.customer_id,
            type=NotificationType.NEW_BID,
            title="New Bid Received",
            message=f'You received a new bid of ${value} on your job "{job.title}"',
            related_id=bid.id,
        )

    logger.info(f"bid placed | bid={bid.id} | job={job.id} | worker={principal.id} | amount={value}")
    return bid
