from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.asset import Asset
from ..models.company import Company, CompanyStatus
from ..models.executive import Executive
from ..schemas.intelligence import AssetProfile, ExecutiveProfile, UNKNOWN_NAME

logger = logging.getLogger(__name__)


def _to_decimal(value: float | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


class StorageWriter:
    """
    Persists extraction results. Every public method is one transaction:
    it either commits fully or rolls back and re-raises.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _resolve_company(self, name: str) -> Company:
        company = (
            self.db.query(Company)
            .filter(func.lower(Company.name) == name.lower())
            .with_for_update()
            .first()
        )
        if company is None:
            company = Company(name=name, status=CompanyStatus.PENDING)
            self.db.add(company)
            self.db.flush()
        return company

    def commit(
        self,
        official_name: str,
        leadership: Iterable[ExecutiveProfile],
        assets: Iterable[AssetProfile],
    ) -> Company:
        """
        Replace the company's executives and assets with the given sets and
        mark it completed.
        """
        name = official_name.strip()
        try:
            company = self._resolve_company(name)

            # Full replace: reprocessing must never accumulate duplicates
            self.db.query(Executive).filter(Executive.company_id == company.id).delete(
                synchronize_session=False
            )
            self.db.query(Asset).filter(Asset.company_id == company.id).delete(
                synchronize_session=False
            )

            company.name = name
            company.status = CompanyStatus.COMPLETED
            company.updated_at = datetime.utcnow()

            for person in leadership:
                self.db.add(
                    Executive(
                        company_id=company.id,
                        name=person.name or UNKNOWN_NAME,
                        expertise=list(person.expertise or []),
                        technical_summary=list(person.technical_summary or []),
                    )
                )

            for asset in assets:
                self.db.add(
                    Asset(
                        company_id=company.id,
                        name=asset.name or UNKNOWN_NAME,
                        commodities=list(asset.commodities or []),
                        status=asset.status,
                        country=asset.country,
                        state_province=asset.state_province,
                        town=asset.town,
                        latitude=_to_decimal(asset.latitude),
                        longitude=_to_decimal(asset.longitude),
                    )
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return company

    def mark_rejected(self, name: str) -> Company:
        """
        Record a domain rejection. Existing child rows are left untouched.
        """
        name = name.strip()
        try:
            company = self._resolve_company(name)
            company.name = name
            company.status = CompanyStatus.REJECTED
            company.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return company
