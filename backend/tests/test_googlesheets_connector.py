import httpx
import pytest

from sheetsync.connectors.base import AccountContext, SourceDescriptor
from sheetsync.connectors.googlesheets_connector import GoogleSheetsReader
from sheetsync.exceptions import SourceReadError

BASE_URL = "https://sheets.test/v4"


def make_reader(handler) -> GoogleSheetsReader:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return GoogleSheetsReader(base_url=BASE_URL, client=client)


def sheets_api(values, titles=("Invoices",), seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path.endswith("values:batchGet"):
            return httpx.Response(200, json={"valueRanges": [{"range": request.url.params["ranges"], "values": values}]})
        return httpx.Response(200, json={
            "spreadsheetId": "abc",
            "sheets": [{"properties": {"title": title}} for title in titles],
        })
    return handler


ACCOUNT = AccountContext(connector_id=1, connector_type="googlesheets", api_token="ya29.token")


class TestNormalizeRange:
    def test_bare_range_uses_first_sheet(self):
        assert GoogleSheetsReader.normalize_range("A:Z", ["Invoices", "Other"]) == "'Invoices'!A:Z"

    def test_existing_sheet_is_kept(self):
        assert GoogleSheetsReader.normalize_range("Other!A1:C10", ["Invoices", "Other"]) == "Other!A1:C10"
        assert GoogleSheetsReader.normalize_range("'Other'!A:C", ["Invoices", "Other"]) == "'Other'!A:C"

    def test_missing_sheet_falls_back_to_first(self):
        assert GoogleSheetsReader.normalize_range("Sheet1!A:Z", ["Invoices"]) == "'Invoices'!A:Z"

    def test_missing_sheet_without_fallback(self):
        with pytest.raises(SourceReadError, match='Sheet "Sheet1" not found'):
            GoogleSheetsReader.normalize_range("Sheet1!A:Z", ["Invoices"], fallback_to_first_sheet=False)

    def test_spreadsheet_without_sheets(self):
        with pytest.raises(SourceReadError, match="No sheets found"):
            GoogleSheetsReader.normalize_range("A:Z", [])


@pytest.mark.asyncio
class TestReadSource:
    async def test_reads_header_and_rows(self):
        seen = []
        reader = make_reader(sheets_api([["Email", "Amount"], ["ada@example.com", "10"], ["grace@example.com"]], seen=seen))

        sheet = await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="A:Z"), ACCOUNT)

        assert sheet.header_row == ["Email", "Amount"]
        assert sheet.data_rows == [["ada@example.com", "10"], ["grace@example.com"]]
        assert sheet.as_records()[1] == {"Email": "grace@example.com", "Amount": ""}

        batch_request = seen[-1]
        assert batch_request.url.params["ranges"] == "'Invoices'!A:Z"
        assert batch_request.url.params["valueRenderOption"] == "FORMATTED_VALUE"
        assert batch_request.headers["Authorization"] == "Bearer ya29.token"
        await reader.close()

    async def test_value_render_option_from_connector_settings(self):
        seen = []
        reader = make_reader(sheets_api([["A"], ["1"]], seen=seen))
        account = AccountContext(api_token="t", settings={"value_render_option": "UNFORMATTED_VALUE"})

        await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="Invoices!A:A"), account)

        assert seen[-1].url.params["valueRenderOption"] == "UNFORMATTED_VALUE"
        await reader.close()

    async def test_empty_range_raises(self):
        reader = make_reader(sheets_api([]))
        with pytest.raises(SourceReadError, match="No data found in source spreadsheet"):
            await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="A:Z"), ACCOUNT)
        await reader.close()

    async def test_http_error_raises_source_read_error(self):
        def handler(request):
            return httpx.Response(403, json={"error": {"code": 403, "message": "The caller does not have permission"}})
        reader = make_reader(handler)

        with pytest.raises(SourceReadError) as exc_info:
            await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="A:Z"), ACCOUNT)

        assert exc_info.value.message == "Google Sheets returned 403: The caller does not have permission"
        await reader.close()

    async def test_network_error_raises_source_read_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        reader = make_reader(handler)

        with pytest.raises(SourceReadError, match="Could not reach Google Sheets"):
            await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="A:Z"), ACCOUNT)
        await reader.close()

    async def test_missing_token(self):
        reader = make_reader(sheets_api([["A"], ["1"]]))
        with pytest.raises(SourceReadError, match="no access token"):
            await reader.read_source(SourceDescriptor(spreadsheet_id="abc", range="A:Z"), AccountContext())
        await reader.close()
