from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caisse.models.base import Base


class Programmation(Base):
    """Planned budget line for a (month, year)."""

    __tablename__ = "programmations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sequence_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rubrique_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rubriques.id", ondelete="SET NULL"), nullable=True
    )
    designation: Mapped[str] = mapped_column(String(500), nullable=False)
    planned_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    planned_amount_in_words: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validated_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("local_users.id", ondelete="SET NULL"), nullable=True
    )
    validated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("local_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    rubrique = relationship("Rubrique", lazy="selectin")
