from typing import Optional

from pydantic import Field, field_validator

from crm.auth.schemas import CamelModel


class SettingsUpdate(CamelModel):
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)
    date_format: Optional[str] = Field(None, min_length=1, max_length=20)
    industry: Optional[str] = Field(None, max_length=100)
    features: Optional[list[str]] = None

    @field_validator("features")
    @classmethod
    def dedupe_features(cls, v):
        if v is None:
            return v
        return list(dict.fromkeys(f.strip().lower() for f in v if f.strip()))


class UpdateOrganizationRequest(CamelModel):
    """PUT /organizations/current"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    settings: Optional[SettingsUpdate] = None
