from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas_bids import (
    AcceptBidResponse,
    BidCreateRequest,
    BidDetailResponse,
    BidResponse,
    BookingResponse,
    JobBidResponse,
    MyBidResponse,
)
from app.api.schemas_common import Envelope
from app.core.auth import Principal, get_current_principal
from app.db.models import BidStatus
from app.db.session import get_session
from app.domain.bid_placement import place_bid
from app.domain.bid_queries import get_bid, list_bids_for_job, list_my_bids
from app.domain.bid_resolution import accept_bid, reject_bid
from app.domain.bid_withdrawal import withdraw_bid


router = APIRouter(prefix="/api/bids", tags=["bids"])


@router.post("", response_model=Envelope[BidResponse], status_code=201)
async def create_bid(
    req: BidCreateRequest,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    bid = await place_bid(
        session,
        principal=principal,
        job_id=req.job_id,
        amount=req.bid_amount,
        proposal=req.proposal,
        estimated_duration=req.estimated_duration,
    )
    return Envelope(message="Bid placed successfully", data=BidResponse.model_validate(bid))


@router.get("/job/{job_id}", response_model=Envelope[list[JobBidResponse]])
async def get_job_bids(
    job_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    rows = await list_bids_for_job(session, principal=principal, job_id=job_id)
    data = [JobBidResponse.model_validate(r) for r in rows]
    return Envelope(data=data, total=len(data))


# declared before /{bid_id} so "my" is not taken for an id
@router.get("/my", response_model=Envelope[list[MyBidResponse]])
async def get_my_bids(
    status: BidStatus | None = None,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    rows = await list_my_bids(session, principal=principal, status=status)
    data = [MyBidResponse.model_validate(r) for r in rows]
    return Envelope(data=data, total=len(data))


@router.put("/{bid_id}/accept", response_model=Envelope[AcceptBidResponse])
async def accept(
    bid_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    result = await accept_bid(session, principal=principal, bid_id=bid_id)
    return Envelope(
        message="Bid accepted successfully",
        data=AcceptBidResponse(
            bid=BidResponse.model_validate(result.bid),
            booking=BookingResponse.model_validate(result.booking),
        ),
    )


@router.put("/{bid_id}/reject", response_model=Envelope[BidResponse])
async def reject(
    bid_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    bid = await reject_bid(session, principal=principal, bid_id=bid_id)
    return Envelope(message="Bid rejected successfully", data=BidResponse.model_validate(bid))


@router.delete("/{bid_id}", response_model=Envelope[dict])
async def withdraw(
    bid_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    await withdraw_bid(session, principal=principal, bid_id=bid_id)
    return Envelope(message="Bid withdrawn successfully")


@router.get("/{bid_id}", response_model=Envelope[BidDetailResponse])
async def get_bid_detail(
    bid_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    row = await get_bid(session, principal=principal, bid_id=bid_id)
    return Envelope(data=BidDetailResponse.model_validate(row))
