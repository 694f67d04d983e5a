from math import ceil
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, selectinload

from ..core.config import get_settings
from ..core.db import get_db
from ..models.company import Company
from ..schemas.company import (
    CompanyDetailOut,
    CompanyOut,
    CompanyPage,
    ProcessAccepted,
    ProcessingStatus,
    ProcessRequest,
)
from ..services.intake import BatchTooLargeError, EmptyBatchError, parse_company_names
from ..services.queue import CeleryTaskQueue, get_task_queue

router = APIRouter(prefix="/companies", tags=["companies"])

settings = get_settings()
logger = logging.getLogger(__name__)


@router.post("/process", response_model=ProcessAccepted, status_code=202)
def process_companies(
    payload: ProcessRequest,
    queue: CeleryTaskQueue = Depends(get_task_queue),
):
    """
    Queue one ingestion task per submitted company name. Returns immediately;
    progress is observed through /companies/status.
    """
    try:
        names = parse_company_names(payload.companies)
    except EmptyBatchError as e:
        return JSONResponse(status_code=400, content={"message": str(e)})
    except BatchTooLargeError as e:
        return JSONResponse(status_code=422, content={"message": str(e)})

    for name in names:
        queue.enqueue(name)

    logger.info(
        "Batch accepted: %d companies queued",
        len(names),
        extra={"step": "process_companies"},
    )

    return ProcessAccepted(
        message="Processing started successfully in the background.",
        companies_queued=len(names),
    )


@router.get("/status", response_model=ProcessingStatus)
def processing_status(queue: CeleryTaskQueue = Depends(get_task_queue)):
    pending = queue.pending_count()
    return ProcessingStatus(is_processing=pending > 0, pending_jobs=pending)


@router.get("", response_model=CompanyPage)
def list_companies(
    search: str | None = None,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    query = db.query(Company)
    if search and search.strip():
        query = query.filter(Company.name.ilike(f"%{search.strip()}%"))

    per_page = settings.PAGE_SIZE
    total = query.count()
    rows = (
        query.order_by(Company.name.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return CompanyPage(
        data=[CompanyOut.model_validate(c) for c in rows],
        current_page=page,
        last_page=max(ceil(total / per_page), 1),
        per_page=per_page,
        total=total,
    )


@router.get("/{company_id}", response_model=CompanyDetailOut)
def get_company(company_id: UUID, db: Session = Depends(get_db)):
    company = (
        db.query(Company)
        .options(selectinload(Company.executives), selectinload(Company.assets))
        .filter(Company.id == company_id)
        .first()
    )
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return CompanyDetailOut.model_validate(company)
