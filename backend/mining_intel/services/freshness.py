from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.company import Company

settings = get_settings()


def find_company(db: Session, name: str) -> Company | None:
    """Case-insensitive exact lookup on the canonical company name."""
    return (
        db.query(Company)
        .filter(func.lower(Company.name) == name.strip().lower())
        .first()
    )


def is_fresh(db: Session, company_name: str, window: timedelta | None = None) -> bool:
    """
    True if a company with this name was processed (completed or rejected)
    within the freshness window, meaning the run can be skipped.
    """
    window = window or timedelta(hours=settings.FRESHNESS_WINDOW_HOURS)
    cutoff = datetime.utcnow() - window
    hit = (
        db.query(Company.id)
        .filter(func.lower(Company.name) == company_name.strip().lower())
        .filter(Company.updated_at >= cutoff)
        .first()
    )
    return hit is not None
