from datetime import date, datetime, time

from pydantic import BaseModel, Field

from caisse.schemas.common import Amount


class _TransactionCreate(BaseModel):
    motive: str = Field(..., min_length=1)
    amount: Amount = Field(..., ge=0, max_digits=18, decimal_places=2)
    amount_in_words: str | None = None
    observation: str | None = None
    service_id: int | None = None
    beo_number: str | None = Field(None, max_length=50)
    # Defaults to the server date when omitted
    transaction_date: date | None = None


class RecetteCreate(_TransactionCreate):
    provenance: str = Field(..., min_length=1, max_length=200)


class DepenseCreate(_TransactionCreate):
    beneficiary: str = Field(..., min_length=1, max_length=200)
    rubrique_id: int


class _TransactionUpdate(BaseModel):
    motive: str | None = Field(None, min_length=1)
    amount: Amount | None = Field(None, ge=0, max_digits=18, decimal_places=2)
    amount_in_words: str | None = None
    observation: str | None = None
    service_id: int | None = None
    beo_number: str | None = Field(None, max_length=50)


class RecetteUpdate(_TransactionUpdate):
    provenance: str | None = Field(None, min_length=1, max_length=200)


class DepenseUpdate(_TransactionUpdate):
    beneficiary: str | None = Field(None, min_length=1, max_length=200)
    rubrique_id: int | None = None


class TransactionResponse(BaseModel):
    id: int
    sequence_number: int
    beo_number: str | None
    transaction_date: date
    # Compatibility alias of transaction_date for older report consumers
    date_transaction: date | None = None
    transaction_time: time
    motive: str
    amount: Amount
    amount_in_words: str | None
    observation: str | None
    opening_balance: Amount | None
    closing_balance: Amount | None
    month: int
    year: int
    month_label: str
    month_year: str
    created_at: datetime

    # Joined fields
    service_id: int | None = None
    service_code: str | None = None
    service_label: str | None = None

    model_config = {"from_attributes": True}


class RecetteResponse(TransactionResponse):
    provenance: str


class DepenseResponse(TransactionResponse):
    beneficiary: str
    rubrique_id: int | None = None
    rubrique_code: str | None = None
    rubrique_label: str | None = None
