from sqlalchemy import Column, String, JSON, DateTime, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from ..core.db import Base

class Asset(Base):
    __tablename__ = "assets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name = Column(String, nullable=False)
    commodities = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=True)  # operating / developing / care and maintenance
    country = Column(String, nullable=True)
    state_province = Column(String, nullable=True)
    town = Column(String, nullable=True)
    latitude = Column(Numeric(11, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    company = relationship("Company", back_populates="assets")
