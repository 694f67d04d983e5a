from sqlalchemy import Column, String, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from ..core.db import Base

class CompanyStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Canonical/official name; the dedup key (matched case-insensitively)
    name = Column(String, unique=True, index=True, nullable=False)
    status = Column(
        Enum(
            CompanyStatus,
            name="company_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
        default=CompanyStatus.PENDING,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    executives = relationship(
        "Executive",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assets = relationship(
        "Asset",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
