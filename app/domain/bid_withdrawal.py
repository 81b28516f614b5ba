from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.errors import Conflict
from app.db.models import BidStatus
from app.db.store import lock_bid_with_job
from app.domain.authorization import Operation, Ownership, authorize

logger = logging.getLogger(__name__)


async def withdraw_bid(session: AsyncSession, *, principal: Principal, bid_id: str) -> None:
    """Delete a pending bid, freeing the worker's slot on the job."""
    authorize(principal, Operation.WITHDRAW_BID)

    async with session.begin():
        bid, job = await lock_bid_with_job(session, bid_id)
        authorize(principal, Operation.WITHDRAW_BID, Ownership(customer_id=job.customer_id, worker_id=bid.worker_id))

        if bid.status != BidStatus.PENDING:
            raise Conflict("You can only withdraw pending bids")

        await session.delete(bid)

    logger.info(f"bid withdrawn | bid={bid_id} | job={job.id} | worker={principal.id}")
