from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class WeatherRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    first_name: StrictStr = Field(alias="name")
    language: StrictStr
    id: StrictStr
    bio: StrictStr
    version: float = Field(strict=True)
