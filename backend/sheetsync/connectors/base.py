from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Union

from pydantic import BaseModel, Field

# Scalar values a transformed record may carry
FieldValue = Optional[Union[str, int, float, bool]]
TransformedRecord = Dict[str, FieldValue]


class SourceDescriptor(BaseModel):
    """Where to read from."""
    spreadsheet_id: str = Field(..., description="Spreadsheet identifier in the source system")
    range: str = Field(..., description="A1 range, optionally prefixed with a sheet name (e.g. 'Sheet1!A:Z')")


class TargetDescriptor(BaseModel):
    """Where to write to."""
    system_type: str = Field(..., description="Target system (e.g. 'quickbooks', 'billcom')")
    entity_type: str = Field(..., description="Target entity (e.g. 'Invoice', 'Contact')")


class AccountContext(BaseModel):
    """Decrypted credentials and settings of the connector used for one read or write."""
    connector_id: Optional[int] = None
    connector_type: Optional[str] = None
    base_url: Optional[str] = None
    api_token: Optional[str] = Field(None, repr=False)
    settings: Dict[str, Any] = Field(default_factory=dict)


class SheetData(BaseModel):
    """Rectangular block of cells; the first row of the range is the header."""
    header_row: List[str]
    data_rows: List[List[str]]

    @classmethod
    def from_values(cls, values: List[List[Any]]) -> "SheetData":
        if not values:
            return cls(header_row=[], data_rows=[])
        header = [str(cell) for cell in values[0]]
        rows = [["" if cell is None else str(cell) for cell in row] for row in values[1:]]
        return cls(header_row=header, data_rows=rows)

    def as_records(self) -> List[Dict[str, str]]:
        """Key each data row by header; short rows are padded with empty strings."""
        records = []
        for row in self.data_rows:
            records.append({
                header: (row[index] if index < len(row) else "")
                for index, header in enumerate(self.header_row)
            })
        return records


class RecordBatch(BaseModel):
    """Typed envelope for the records written to one target entity."""
    target: TargetDescriptor
    records: List[TransformedRecord]


class WriteResult(BaseModel):
    rows_processed: int = Field(..., ge=0)
    rows_failed: int = Field(0, ge=0)
    details: Dict[str, Any] = Field(default_factory=dict)


class SourceReader(ABC):
    """Reads a block of string cells from a source range."""

    @abstractmethod
    async def read_source(self, source: SourceDescriptor, account: AccountContext) -> SheetData:
        """
        Fetches the range. Must raise SourceReadError when the range
        cannot be read or yields no rows.
        """
        pass


class TargetWriter(ABC):
    """Writes a batch of transformed records to a target system."""

    @abstractmethod
    async def write_target(self, batch: RecordBatch, account: AccountContext) -> WriteResult:
        """Writes the batch and reports rows processed and failed. Raises TargetWriteError on rejection."""
        pass
