from typing import Optional, List
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field

from sheetsync.constants.sync import SyncFrequency, TriggerType


class FieldMapping(BaseModel):
    """A single source column to target field correspondence."""

    # Older clients send camelCase and 'sheetColumn'
    source_column: Optional[str] = Field(
        "", validation_alias=AliasChoices("source_column", "sourceColumn", "sheetColumn")
    )
    target_field: Optional[str] = Field("", validation_alias=AliasChoices("target_field", "targetField"))
    required: bool = False
    data_type: Optional[str] = Field(None, validation_alias=AliasChoices("data_type", "dataType"))


class MappingBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    source_connector_id: Optional[int] = None
    source_spreadsheet_id: str = Field(..., min_length=1)
    source_range: Optional[str] = None
    target_type: str = Field(..., min_length=1)
    target_entity: str = Field(..., min_length=1)
    target_connector_id: Optional[int] = None
    field_mappings: List[FieldMapping]
    sync_frequency: SyncFrequency = SyncFrequency.HOURLY
    trigger_type: TriggerType = TriggerType.SCHEDULE
    is_active: bool = True


class MappingCreate(MappingBase):
    pass


class MappingUpdate(BaseModel):
    name: Optional[str] = None
    source_connector_id: Optional[int] = None
    source_spreadsheet_id: Optional[str] = None
    source_range: Optional[str] = None
    target_type: Optional[str] = None
    target_entity: Optional[str] = None
    target_connector_id: Optional[int] = None
    field_mappings: Optional[List[FieldMapping]] = None
    sync_frequency: Optional[SyncFrequency] = None
    trigger_type: Optional[TriggerType] = None
    is_active: Optional[bool] = None


class MappingInDB(MappingBase):
    id: int
    user_id: str
    source_type: str
    last_sync_at: Optional[datetime] = None
    sync_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
