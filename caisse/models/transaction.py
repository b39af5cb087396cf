import enum
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from caisse.models.base import Base


class TransactionKind(str, enum.Enum):
    RECETTE = "recette"
    DEPENSE = "depense"


class TransactionMixin:
    """Columns shared by recettes and dépenses.

    ``sequence_number``, ``transaction_date`` and ``transaction_time`` are
    computed server side at creation and never edited afterwards.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sequence_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    beo_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    transaction_time: Mapped[time] = mapped_column(Time, nullable=False)
    motive: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    amount_in_words: Mapped[str | None] = mapped_column(Text, nullable=True)
    observation: Mapped[str | None] = mapped_column(Text, nullable=True)
    opening_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    closing_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    # Period fields derived from transaction_date
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month_label: Mapped[str] = mapped_column(String(20), nullable=False)
    month_year: Mapped[str] = mapped_column(String(10), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @declared_attr
    def service_id(cls) -> Mapped[int | None]:
        return mapped_column(
            Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True
        )

    @declared_attr
    def user_id(cls) -> Mapped[int | None]:
        return mapped_column(
            Integer, ForeignKey("local_users.id", ondelete="SET NULL"), nullable=True
        )

    @declared_attr
    def service(cls):
        return relationship("Service", lazy="selectin")


class Recette(TransactionMixin, Base):
    __tablename__ = "recettes"

    provenance: Mapped[str] = mapped_column(String(200), nullable=False)

    kind = TransactionKind.RECETTE

    @property
    def counterparty(self) -> str:
        return self.provenance


class Depense(TransactionMixin, Base):
    __tablename__ = "depenses"

    beneficiary: Mapped[str] = mapped_column(String(200), nullable=False)
    rubrique_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rubriques.id", ondelete="SET NULL"), nullable=True
    )

    rubrique = relationship("Rubrique", lazy="selectin")

    kind = TransactionKind.DEPENSE

    @property
    def counterparty(self) -> str:
        return self.beneficiary
