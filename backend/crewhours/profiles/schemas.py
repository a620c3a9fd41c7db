import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from crewhours.profiles.validation import (
    MAX_ADDRESS_LENGTH,
    MAX_CONTRACT_LENGTH,
    MAX_IBAN_LENGTH,
    MAX_NAME_LENGTH,
    normalize_iban,
    normalize_swift,
    normalize_vat_number,
    reject_nulls,
    require_digits,
    sanitize_text,
)


class ProfileUpdate(BaseModel):
    company_name: str | None = Field(None, max_length=MAX_NAME_LENGTH)
    contract_number: str | None = Field(None, max_length=MAX_CONTRACT_LENGTH)
    billing_address: str | None = Field(None, max_length=MAX_ADDRESS_LENGTH)
    iban: str | None = Field(None, max_length=MAX_IBAN_LENGTH)
    swift_bic: str | None = Field(None, max_length=11)
    ico: str | None = Field(None, max_length=20)
    dic: str | None = Field(None, max_length=20)
    vat_number: str | None = Field(None, max_length=20)
    is_vat_payer: bool | None = None

    @field_validator("company_name", "contract_number", "billing_address")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None

    @field_validator("iban")
    @classmethod
    def _iban(cls, value: str | None) -> str | None:
        return normalize_iban(value) if value is not None else None

    @field_validator("swift_bic")
    @classmethod
    def _swift(cls, value: str | None) -> str | None:
        return normalize_swift(value) if value is not None else None

    @field_validator("vat_number")
    @classmethod
    def _vat_number(cls, value: str | None) -> str | None:
        return normalize_vat_number(value) if value is not None else None

    @field_validator("ico")
    @classmethod
    def _ico(cls, value: str | None) -> str | None:
        return require_digits(value, "ICO") if value is not None else None

    @field_validator("dic")
    @classmethod
    def _dic(cls, value: str | None) -> str | None:
        return require_digits(value, "DIC") if value is not None else None

    @model_validator(mode="after")
    def _required_columns(self) -> "ProfileUpdate":
        reject_nulls(self, ("is_vat_payer",))
        return self


class ProfileAdminUpdate(ProfileUpdate):
    """Fields only administrators may change."""

    hourly_rate: float | None = Field(None, ge=0, le=1000)


class ProfileResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    company_name: str | None
    contract_number: str | None
    billing_address: str | None
    iban: str | None
    swift_bic: str | None
    ico: str | None
    dic: str | None
    vat_number: str | None
    is_vat_payer: bool
    hourly_rate: float | None
    signature_path: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
