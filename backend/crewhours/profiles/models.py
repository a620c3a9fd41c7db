import uuid

from sqlalchemy import Boolean, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin


class Profile(TimestampMixin, SoftDeleteMixin, Base):
    """Billing data of a subcontractor, one row per user."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    company_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contract_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    billing_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    iban: Mapped[str | None] = mapped_column(String(50), nullable=True)
    swift_bic: Mapped[str | None] = mapped_column(String(11), nullable=True)
    ico: Mapped[str | None] = mapped_column(String(20), nullable=True)
    dic: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vat_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_vat_payer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hourly_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    signature_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    user: Mapped[User] = relationship("User", lazy="selectin")

    @property
    def full_name(self) -> str:
        return self.user.full_name if self.user else ""
