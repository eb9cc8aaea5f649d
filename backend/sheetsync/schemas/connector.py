from typing import Optional, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, Field

ConnectorType = Literal["googlesheets", "quickbooks", "billcom", "webhook", "mock"]


class GoogleSheetsConnectorConfig(BaseModel):
    """Google Sheets specific settings"""
    value_render_option: str = "FORMATTED_VALUE"
    fallback_to_first_sheet: bool = True  # Use the first sheet when the range names a missing one


class ConnectorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: ConnectorType
    base_url: Optional[str] = None
    is_active: bool = True
    settings: Optional[Dict[str, Any]] = None  # Connector-specific settings


class ConnectorCreate(ConnectorBase):
    api_token: Optional[str] = None  # Encrypted before storage


class ConnectorUpdate(BaseModel):
    name: Optional[str] = None
    base_url: Optional[str] = None
    api_token: Optional[str] = None
    is_active: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None


class ConnectorInDB(ConnectorBase):
    id: int
    api_token: Optional[str] = None  # Always masked
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
