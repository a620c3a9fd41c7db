"""SQLAlchemy models for company-wide settings."""

import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from crewhours.database import Base, TimestampMixin


class CompanySettings(TimestampMixin, Base):
    """Singleton row holding the contractor's stamp and signature.

    Only one row should exist; the service layer creates it on first use.
    """

    __tablename__ = "company_settings"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    signature_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
