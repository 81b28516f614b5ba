from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import JobStatus


class JobCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    budget_min: Decimal
    budget_max: Decimal
    location_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    images: list[str] = Field(default_factory=list, max_length=5)


class JobUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    budget_min: Optional[Decimal] = None
    budget_max: Optional[Decimal] = None
    location_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    status: JobStatus
    title: str
    description: str
    budget_min: Decimal
    budget_max: Decimal
    location_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    images: list[str] = []
    created_at: datetime
    updated_at: datetime
    bids_count: Optional[int] = None
    pending_bids: Optional[int] = None
    customer_name: Optional[str] = None
    customer_rating: Optional[float] = None
