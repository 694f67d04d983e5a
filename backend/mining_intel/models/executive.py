from sqlalchemy import Column, String, JSON, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from ..core.db import Base

class Executive(Base):
    __tablename__ = "executives"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name = Column(String, nullable=False)
    expertise = Column(JSON, nullable=False, default=list)          # ["Geology", ...]
    technical_summary = Column(JSON, nullable=False, default=list)  # exactly 3 bullets from the LLM
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    company = relationship("Company", back_populates="executives")
