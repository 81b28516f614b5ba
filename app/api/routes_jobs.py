from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas_common import Envelope, Pagination
from app.api.schemas_jobs import JobCreateRequest, JobResponse, JobUpdateRequest
from app.core.auth import Principal, get_current_principal
from app.db.filters import JobFilter
from app.db.models import JobStatus
from app.db.session import get_session
from app.domain.job_service import (
    JobDraft,
    JobPage,
    cancel_job,
    create_job,
    get_job,
    list_jobs,
    list_my_jobs,
    update_job,
)


router = APIRouter(prefix="/api/jobs", tags=["jobs"])


def _page_envelope(page: JobPage) -> Envelope:
    return Envelope(
        data=[JobResponse.model_validate(r) for r in page.items],
        total=page.total,
        pagination=Pagination(page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages),
    )


@router.get("", response_model=Envelope[list[JobResponse]])
async def browse_jobs(
    status: JobStatus = JobStatus.OPEN,
    city: str | None = None,
    province: str | None = None,
    min_budget: Decimal | None = Query(default=None, ge=0),
    max_budget: Decimal | None = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    job_filter = JobFilter(
        status=status,
        city=city,
        province=province,
        min_budget=min_budget,
        max_budget=max_budget,
    )
    return _page_envelope(await list_jobs(session, job_filter=job_filter, page=page, limit=limit))


@router.post("", response_model=Envelope[JobResponse], status_code=201)
async def post_job(
    req: JobCreateRequest,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    job = await create_job(session, principal=principal, draft=JobDraft(**req.model_dump()))
    return Envelope(message="Job posted successfully", data=JobResponse.model_validate(job))


@router.get("/my/posted", response_model=Envelope[list[JobResponse]])
async def get_my_jobs(
    status: JobStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    return _page_envelope(await list_my_jobs(session, principal=principal, status=status, page=page, limit=limit))


@router.get("/{job_id}", response_model=Envelope[JobResponse])
async def get_job_detail(job_id: str, session: AsyncSession = Depends(get_session)):
    row = await get_job(session, job_id=job_id)
    return Envelope(data=JobResponse.model_validate(row))


@router.put("/{job_id}", response_model=Envelope[JobResponse])
async def edit_job(
    job_id: str,
    req: JobUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    job = await update_job(session, principal=principal, job_id=job_id, changes=changes)
    return Envelope(message="Job updated successfully", data=JobResponse.model_validate(job))


@router.delete("/{job_id}", response_model=Envelope[JobResponse])
async def delete_job(
    job_id: str,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session),
):
    job = await cancel_job(session, principal=principal, job_id=job_id)
    return Envelope(message="Job cancelled successfully", data=JobResponse.model_validate(job))
