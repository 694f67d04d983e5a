# backend/mining_intel/schemas/intelligence.py
"""
Typed shape of the LLM extraction result.

The model replies with loosely-typed JSON; everything is validated here, at the
provider boundary, so the pipeline only ever handles these objects. Partially
populated entries are kept and their missing fields defaulted; only structural
problems (wrong container types) fail validation.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN_NAME = "Unknown"
TECHNICAL_SUMMARY_POINTS = 3


def _clean_str_list(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple)):
        return []
    return [str(item).strip() for item in v if item is not None and str(item).strip()]


def _blank_to_none(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, str):
        return v.strip() or None
    return str(v)


class ExecutiveProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = UNKNOWN_NAME
    expertise: list[str] = []
    technical_summary: list[str] = []

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, v):
        return _blank_to_none(v) or UNKNOWN_NAME

    @field_validator("expertise", mode="before")
    @classmethod
    def _lists(cls, v):
        return _clean_str_list(v)

    @field_validator("technical_summary", mode="before")
    @classmethod
    def _summary(cls, v):
        # Three bullets at most; shorter lists are kept as given
        return _clean_str_list(v)[:TECHNICAL_SUMMARY_POINTS]


class AssetProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = UNKNOWN_NAME
    commodities: list[str] = []
    status: str | None = None
    country: str | None = None
    state_province: str | None = None
    town: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, v):
        return _blank_to_none(v) or UNKNOWN_NAME

    @field_validator("commodities", mode="before")
    @classmethod
    def _lists(cls, v):
        return _clean_str_list(v)

    @field_validator("status", "country", "state_province", "town", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return _blank_to_none(v)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coordinate(cls, v, info):
        # Estimated coordinates sometimes come back as prose ("approx. -19.9")
        if v is None or isinstance(v, bool):
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        limit = 90.0 if info.field_name == "latitude" else 180.0
        if value != value or abs(value) > limit:
            return None
        return value


class IntelligenceReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    official_name: str | None = None
    is_mining_sector: bool = False
    leadership: list[ExecutiveProfile]
    assets: list[AssetProfile]

    @field_validator("official_name", mode="before")
    @classmethod
    def _official_name(cls, v):
        return _blank_to_none(v)

    @field_validator("is_mining_sector", mode="before")
    @classmethod
    def _mining_flag(cls, v):
        return False if v is None else v

    @field_validator("leadership", "assets", mode="before")
    @classmethod
    def _entries(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return [item for item in v if isinstance(item, dict)]
        return v

    @property
    def has_intelligence(self) -> bool:
        return bool(self.leadership or self.assets)

    @property
    def is_accepted(self) -> bool:
        return self.is_mining_sector is True and self.has_intelligence

    def resolved_name(self, submitted_name: str) -> str:
        return self.official_name or submitted_name.strip()
