import httpx
import logging
from typing import Dict, Any, List, Optional

from sheetsync.connectors.base import AccountContext, SheetData, SourceDescriptor, SourceReader
from sheetsync.config import settings
from sheetsync.exceptions import SourceReadError
from sheetsync.schemas.connector import GoogleSheetsConnectorConfig

log = logging.getLogger(__name__)


class GoogleSheetsReader(SourceReader):
    """
    Reads spreadsheet ranges through the Google Sheets v4 REST API.
    The access token comes from the source connector's account context.
    """

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.google_sheets_api_url).rstrip('/')
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=settings.http_timeout_seconds)

    async def close(self):
        await self.client.aclose()

    async def _request(self, path: str, token: str, **kwargs) -> Dict[str, Any]:
        """Helper to make authenticated GET requests to the Sheets API."""
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        try:
            log.trace(f"Sheets API GET {path} with params: {kwargs.get('params', 'none')}")
            response = await self.client.get(path, headers=headers, **kwargs)
            log.trace(f"Sheets API response for {path}: {response.status_code}")
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"HTTP error for {e.request.url}: {e.response.status_code} - {e.response.text}")
            raise SourceReadError(self._error_message(e.response))
        except httpx.RequestError as e:
            log.error(f"Request error for {e.request.url}: {e}")
            raise SourceReadError(f"Could not reach Google Sheets: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            message = response.json().get("error", {}).get("message")
        except ValueError:
            message = None
        return f"Google Sheets returned {response.status_code}: {message or response.text}"

    async def fetch_sheet_titles(self, spreadsheet_id: str, token: str) -> List[str]:
        data = await self._request(
            f"/spreadsheets/{spreadsheet_id}",
            token,
            params={"fields": "spreadsheetId,properties,sheets.properties"}
        )
        return [sheet.get("properties", {}).get("title", "") for sheet in data.get("sheets", [])]

    @staticmethod
    def normalize_range(range_: str, sheet_titles: List[str], fallback_to_first_sheet: bool = True) -> str:
        """
        Qualify a range with a sheet name. A bare range ('A:Z') is resolved against the
        first sheet; a range naming a sheet that does not exist falls back to the first
        sheet unless disabled.
        """
        if not sheet_titles:
            raise SourceReadError("No sheets found in the spreadsheet")

        normalized = range_.strip()
        first_sheet = sheet_titles[0]
        if "!" in normalized:
            sheet_name, cell_range = normalized.rsplit("!", 1)
            unquoted = sheet_name.strip("'")
            if unquoted in sheet_titles:
                return normalized
            if not fallback_to_first_sheet:
                raise SourceReadError(f'Sheet "{unquoted}" not found in spreadsheet')
            log.warning(f'Sheet "{unquoted}" not found, using first sheet "{first_sheet}" instead')
            return f"'{first_sheet}'!{cell_range}"
        return f"'{first_sheet}'!{normalized}"

    async def read_source(self, source: SourceDescriptor, account: AccountContext) -> SheetData:
        if not account.api_token:
            raise SourceReadError("Source account has no access token configured")
        config = GoogleSheetsConnectorConfig(**(account.settings or {}))

        log.info(f"Reading range '{source.range}' from spreadsheet {source.spreadsheet_id}")
        titles = await self.fetch_sheet_titles(source.spreadsheet_id, account.api_token)
        normalized = self.normalize_range(source.range, titles, config.fallback_to_first_sheet)
        log.debug(f"Normalized range '{source.range}' to '{normalized}'")

        data = await self._request(
            f"/spreadsheets/{source.spreadsheet_id}/values:batchGet",
            account.api_token,
            params={"ranges": normalized, "valueRenderOption": config.value_render_option}
        )
        value_ranges = data.get("valueRanges") or []
        values = value_ranges[0].get("values", []) if value_ranges else []
        if not values:
            raise SourceReadError("No data found in source spreadsheet")

        sheet = SheetData.from_values(values)
        log.debug(f"Read {len(sheet.data_rows)} data rows with headers {sheet.header_row}")
        return sheet
