import pytest

from app.core.errors import Conflict, Forbidden, NotFound
from app.db.models import Bid, BidStatus
from app.domain.bid_placement import place_bid
from app.domain.bid_resolution import accept_bid
from app.domain.bid_withdrawal import withdraw_bid


@pytest.mark.asyncio
async def test_withdraw_deletes_bid_and_frees_slot(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    bid = await place_bid(session, principal=worker, job_id=job_id, amount=50, proposal="First proposal here")
    await withdraw_bid(session, principal=worker, bid_id=bid.id)

    assert await market.get(Bid, bid.id) is None

    again = await place_bid(session, principal=worker, job_id=job_id, amount=45, proposal="Second proposal here")
    assert again.status == BidStatus.PENDING


@pytest.mark.asyncio
async def test_withdraw_accepted_bid_fails(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)
    bid_id = await market.bid(job_id, worker)
    await accept_bid(session, principal=owner, bid_id=bid_id)

    with pytest.raises(Conflict) as exc_info:
        await withdraw_bid(session, principal=worker, bid_id=bid_id)

    assert exc_info.value.message == "You can only withdraw pending bids"
    assert (await market.get(Bid, bid_id)).status == BidStatus.ACCEPTED


@pytest.mark.asyncio
async def test_only_the_bidder_can_withdraw(session, market):
    owner = await market.customer()
    worker = await market.worker()
    other = await market.worker("Olga Other")
    job_id = await market.job(owner)
    bid_id = await market.bid(job_id, worker)

    with pytest.raises(Forbidden) as exc_info:
        await withdraw_bid(session, principal=other, bid_id=bid_id)
    assert exc_info.value.message == "You can only withdraw your own bids"

    with pytest.raises(Forbidden):
        await withdraw_bid(session, principal=owner, bid_id=bid_id)

    assert await market.get(Bid, bid_id) is not None


@pytest.mark.asyncio
async def test_withdraw_unknown_bid(session, market):
    worker = await market.worker()
    with pytest.raises(NotFound):
        await withdraw_bid(session, principal=worker, bid_id="missing")


@pytest.mark.asyncio
async def test_withdraw_sends_no_notification(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)
    bid_id = await market.bid(job_id, worker)

    await withdraw_bid(session, principal=worker, bid_id=bid_id)

    assert await market.notifications_for(owner.id) == []
    assert await market.notifications_for(worker.id) == []
