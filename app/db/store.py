from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.db.models import Bid, Job


async def load_job(session: AsyncSession, job_id: str, *, for_update: bool = False) -> Job:
    stmt = select(Job).where(Job.id == job_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    res = await session.execute(stmt)
    job = res.scalar_one_or_none()
    if not job:
        raise NotFound("Job not found")
    return job


async def load_bid(session: AsyncSession, bid_id: str) -> Bid:
    res = await session.execute(select(Bid).where(Bid.id == bid_id))
    bid = res.scalar_one_or_none()
    if not bid:
        raise NotFound("Bid not found")
    return bid


async def lock_bid_with_job(session: AsyncSession, bid_id: str) -> tuple[Bid, Job]:
    """Lock the bid's job row, then re-read the bid under that lock.

    Every writer touching a job's bids takes the job lock first, so the
    bid status read here cannot change until the transaction ends.
    """
    bid = await load_bid(session, bid_id)
    job = await load_job(session, bid.job_id, for_update=True)

    res = await session.execute(
        select(Bid)
        .where(Bid.id == bid_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    bid = res.scalar_one_or_none()
    if not bid:
        # withdrawn while we waited for the lock
        raise NotFound("Bid not found")
    return bid, job
