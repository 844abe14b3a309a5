from sqlalchemy import Column, String, DateTime

from app.core.config import CODE_LENGTH
from .base import Base


class PendingCode(Base):
    __tablename__ = "pending_codes"

    # One live code per email, stored exactly as submitted
    email = Column(String, primary_key=True)
    code = Column(String(CODE_LENGTH), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)
