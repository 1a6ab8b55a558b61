# backend/salon/schemas/settings.py

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class SettingRead(BaseModel):
    key: str
    value: str
    type: str
    description: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SettingsResponse(BaseModel):
    settings: list[SettingRead]
    current_values: dict[str, Any]


class SettingValueUpdate(BaseModel):
    key: str
    value: Any


class SettingsUpdate(BaseModel):
    settings: list[SettingValueUpdate]


class SettingsUpdateResponse(BaseModel):
    message: str
    settings: dict[str, Any]
