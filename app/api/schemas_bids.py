from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.db.models import BidStatus, BookingStatus, JobStatus


class BidCreateRequest(BaseModel):
    # range/length rules are enforced by the service so they fail in order
    job_id: str
    bid_amount: Decimal
    proposal: str
    estimated_duration: Optional[str] = None


class BidResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    worker_id: str
    status: BidStatus
    amount: Decimal
    proposal: str
    estimated_duration: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class JobBidResponse(BidResponse):
    worker_name: str
    worker_email: Optional[str] = None
    worker_phone: Optional[str] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    rating: Optional[float] = None
    total_reviews: int = 0
    total_jobs_completed: int = 0


class MyBidResponse(BidResponse):
    job_title: str
    job_description: str
    budget_min: Decimal
    budget_max: Decimal
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    job_status: JobStatus
    job_images: list[str] = []
    customer_name: str
    customer_phone: Optional[str] = None


class BidDetailResponse(BidResponse):
    job_title: str
    job_description: str
    customer_id: str
    worker_name: str
    profile_picture: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: int = 0


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    customer_id: str
    worker_id: str
    agreed_price: Decimal
    status: BookingStatus
    created_at: datetime


class AcceptBidResponse(BaseModel):
    bid: BidResponse
    booking: BookingResponse
