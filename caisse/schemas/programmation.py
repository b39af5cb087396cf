from datetime import datetime

from pydantic import BaseModel, Field

from caisse.schemas.common import Amount


class ProgrammationCreate(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    designation: str = Field(..., min_length=1, max_length=500)
    planned_amount: Amount = Field(..., ge=0, max_digits=18, decimal_places=2)
    planned_amount_in_words: str | None = None
    rubrique_id: int | None = None
    sequence_number: int | None = Field(None, ge=1)


class ProgrammationUpdate(BaseModel):
    designation: str | None = Field(None, min_length=1, max_length=500)
    planned_amount: Amount | None = Field(None, ge=0, max_digits=18, decimal_places=2)
    planned_amount_in_words: str | None = None
    rubrique_id: int | None = None
    sequence_number: int | None = Field(None, ge=1)


class ProgrammationResponse(BaseModel):
    id: int
    sequence_number: int | None
    month: int
    year: int
    designation: str
    planned_amount: Amount
    planned_amount_in_words: str | None
    is_validated: bool
    validated_at: datetime | None
    rubrique_id: int | None
    created_at: datetime

    # Joined fields
    rubrique_code: str | None = None
    rubrique_label: str | None = None

    model_config = {"from_attributes": True}
