from datetime import datetime

from pydantic import BaseModel, Field

from caisse.models.reference import SignatureType


class RubriqueCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    libelle: str = Field(..., min_length=1, max_length=200)
    imp: str | None = Field(None, max_length=50)


class RubriqueUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    libelle: str | None = Field(None, min_length=1, max_length=200)
    imp: str | None = Field(None, max_length=50)
    is_active: bool | None = None


class RubriqueResponse(BaseModel):
    id: int
    code: str
    libelle: str
    imp: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ServiceCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    libelle: str = Field(..., min_length=1, max_length=200)


class ServiceUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    libelle: str | None = Field(None, min_length=1, max_length=200)
    is_active: bool | None = None


class ServiceResponse(BaseModel):
    id: int
    code: str
    libelle: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SignataireCreate(BaseModel):
    # Blank values are refused by the service with a French message
    matricule: str = Field("", max_length=50)
    nom: str = Field("", max_length=200)
    grade: str | None = Field(None, max_length=100)
    fonction: str | None = Field(None, max_length=200)
    type_signature: SignatureType | None = None


class SignataireUpdate(BaseModel):
    matricule: str | None = Field(None, min_length=1, max_length=50)
    nom: str | None = Field(None, min_length=1, max_length=200)
    grade: str | None = Field(None, max_length=100)
    fonction: str | None = Field(None, max_length=200)
    type_signature: SignatureType | None = None
    is_active: bool | None = None


class SignataireResponse(BaseModel):
    id: int
    matricule: str
    nom: str
    grade: str | None
    fonction: str | None
    type_signature: SignatureType | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
