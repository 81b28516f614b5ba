"""Tests for placing bids."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import Conflict, Forbidden, InvalidRequest, NotFound
from app.db.models import Bid, BidStatus, JobStatus, NotificationType
from app.domain.bid_placement import is_duplicate_bid, place_bid


@pytest.mark.asyncio
async def test_place_bid_creates_pending_bid_and_notifies_owner(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    bid = await place_bid(
        session, principal=worker, job_id=job_id, amount=Decimal("6000"), proposal="I can fix this leak today"
    )

    assert bid.status == BidStatus.PENDING
    stored = await market.get(Bid, bid.id)
    assert stored.amount == Decimal("6000")
    assert stored.worker_id == worker.id

    notes = await market.notifications_for(owner.id)
    assert len(notes) == 1
    assert notes[0].type == NotificationType.NEW_BID
    assert notes[0].related_id == bid.id
    assert "6000" in notes[0].message
    assert "Leaking kitchen tap" in notes[0].message


@pytest.mark.asyncio
async def test_customer_cannot_place_bid(session, market):
    owner = await market.customer()
    job_id = await market.job(owner)

    with pytest.raises(Forbidden):
        await place_bid(session, principal=owner, job_id=job_id, amount=100, proposal="x" * 20)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, "abc"])
async def test_amount_must_be_positive(session, market, amount):
    worker = await market.worker()
    with pytest.raises(InvalidRequest) as exc_info:
        await place_bid(session, principal=worker, job_id="missing", amount=amount, proposal="x" * 20)
    assert exc_info.value.field == "bid_amount"


@pytest.mark.asyncio
async def test_proposal_length_is_checked_after_trimming(session, market):
    worker = await market.worker()
    with pytest.raises(InvalidRequest) as exc_info:
        await place_bid(session, principal=worker, job_id="missing", amount=10, proposal="   short    ")
    assert exc_info.value.field == "proposal"


@pytest.mark.asyncio
async def test_validation_runs_before_job_lookup(session, market):
    worker = await market.worker()
    # a bad amount wins over the unknown job
    with pytest.raises(InvalidRequest):
        await place_bid(session, principal=worker, job_id="missing", amount=0, proposal="short")


@pytest.mark.asyncio
async def test_unknown_job(session, market):
    worker = await market.worker()
    with pytest.raises(NotFound):
        await place_bid(session, principal=worker, job_id="missing", amount=10, proposal="A solid proposal")


@pytest.mark.asyncio
async def test_cannot_bid_on_own_job(session, market):
    # an account that is both the job owner and a worker
    worker = await market.worker()
    job_id = await market.job(worker)

    with pytest.raises(Conflict) as exc_info:
        await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")
    assert "own job" in exc_info.value.message
    assert await market.count(Bid) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [JobStatus.ASSIGNED, JobStatus.CANCELLED, JobStatus.COMPLETED])
async def test_job_must_be_open(session, market, status):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner, status=status)

    with pytest.raises(Conflict) as exc_info:
        await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")
    assert exc_info.value.message == "This job is no longer accepting bids"


@pytest.mark.asyncio
async def test_one_bid_per_worker_per_job(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")
    with pytest.raises(Conflict) as exc_info:
        await place_bid(session, principal=worker, job_id=job_id, amount=20, proposal="Another proposal")
    assert exc_info.value.message == "You have already placed a bid on this job"
    assert await market.count(Bid) == 1
    # the failed attempt left no notification behind
    assert len(await market.notifications_for(owner.id)) == 1


@pytest.mark.asyncio
async def test_worker_profile_required(session, market):
    owner = await market.customer()
    worker = await market.worker(profile=False)
    job_id = await market.job(owner)

    with pytest.raises(Conflict) as exc_info:
        await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")
    assert "worker profile" in exc_info.value.message
    assert await market.count(Bid) == 0
    assert await market.notifications_for(owner.id) == []


@pytest.mark.asyncio
async def test_notification_failure_does_not_lose_the_bid(session, market, monkeypatch):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    def _broken(**kwargs):
        raise SQLAlchemyError("notification store down")

    monkeypatch.setattr("app.core.notifications.Notification", _broken)

    bid = await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")

    assert (await market.get(Bid, bid.id)).status == BidStatus.PENDING
    assert await market.notifications_for(owner.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0.001", "10.505", "100000000", "123456789012345.678"])
async def test_amount_must_fit_money_column(session, market, amount):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    with pytest.raises(InvalidRequest) as exc_info:
        await place_bid(session, principal=worker, job_id=job_id, amount=amount, proposal="A solid proposal")

    assert exc_info.value.field == "bid_amount"
    assert await market.count(Bid) == 0


@pytest.mark.asyncio
async def test_amount_with_trailing_zeros_is_kept_exact(session, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    bid = await place_bid(session, principal=worker, job_id=job_id, amount="99999999.990", proposal="A solid proposal")

    assert (await market.get(Bid, bid.id)).amount == Decimal("99999999.99")


def test_duplicate_bid_detection_only_matches_the_unique_pair():
    unique = IntegrityError("INSERT INTO bids", {}, Exception("UNIQUE constraint failed: bids.job_id, bids.worker_id"))
    named = IntegrityError("INSERT INTO bids", {}, Exception('violates unique constraint "uq_bids_job_worker"'))
    check = IntegrityError("INSERT INTO bids", {}, Exception("CHECK constraint failed: ck_bids_amount_positive"))

    assert is_duplicate_bid(unique)
    assert is_duplicate_bid(named)
    assert not is_duplicate_bid(check)


@pytest.mark.asyncio
async def test_other_integrity_errors_are_not_reported_as_duplicates(session, market, monkeypatch):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)
    monkeypatch.setattr("app.domain.bid_placement._validate_amount", lambda amount: Decimal("-1"))

    with pytest.raises(IntegrityError):
        await place_bid(session, principal=worker, job_id=job_id, amount=10, proposal="A solid proposal")

    assert await market.count(Bid) == 0


@pytest.mark.asyncio
async def test_concurrent_bids_from_one_worker_create_one_bid(session_factory, market):
    owner = await market.customer()
    worker = await market.worker()
    job_id = await market.job(owner)

    async def _place(amount):
        async with session_factory() as s:
            return await place_bid(s, principal=worker, job_id=job_id, amount=amount, proposal="A solid proposal")

    results = await asyncio.gather(_place(10), _place(20), return_exceptions=True)

    wins = [r for r in results if isinstance(r, Bid)]
    losses = [r for r in results if isinstance(r, Exception)]
    assert len(wins) == 1
    assert len(losses) == 1
    assert isinstance(losses[0], Conflict)
    assert losses[0].message == "You have already placed a bid on this job"
    assert await market.count(Bid) == 1
    assert len(await market.notifications_for(owner.id)) == 1
