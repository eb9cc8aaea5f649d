import json

import httpx
import pytest

from sheetsync.connectors.base import AccountContext, RecordBatch, TargetDescriptor
from sheetsync.connectors.registry import account_context_for, build_target_writer
from sheetsync.connectors.target_writers import MockTargetWriter, TargetWriterRouter, WebhookTargetWriter
from sheetsync.exceptions import TargetWriteError
from sheetsync.models.connector import Connector
from sheetsync.utils.encrypt import encrypt_data


def batch(system_type="quickbooks", records=None):
    return RecordBatch(
        target=TargetDescriptor(system_type=system_type, entity_type="Invoice"),
        records=records if records is not None else [{"ACCOUNT_EMAIL": "a@example.com"}, {"ACCOUNT_EMAIL": "b@example.com"}]
    )


@pytest.mark.asyncio
class TestWriters:
    async def test_mock_writer_accepts_everything(self):
        result = await MockTargetWriter().write_target(batch(), AccountContext())
        assert result.rows_processed == 2
        assert result.rows_failed == 0
        assert result.details["target_type"] == "quickbooks"
        assert result.details["target_entity"] == "Invoice"
        assert "processed_at" in result.details

    async def test_router_rejects_unknown_target(self):
        router = TargetWriterRouter({"quickbooks": MockTargetWriter()})
        with pytest.raises(TargetWriteError, match="Unsupported target system: netsuite"):
            await router.write_target(batch("netsuite"), AccountContext())

    async def test_default_router_serves_known_targets(self):
        writer = build_target_writer()
        for system_type in ("quickbooks", "billcom", "QuickBooks"):
            result = await writer.write_target(batch(system_type), AccountContext())
            assert result.rows_processed == 2
        await writer.close()

    async def test_webhook_posts_records_and_reads_counts(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200, json={"rowsProcessed": 1, "rowsFailed": 1})

        writer = WebhookTargetWriter(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        account = AccountContext(base_url="https://hooks.test/invoices", api_token="secret")

        result = await writer.write_target(batch("webhook"), account)

        assert result.rows_processed == 1
        assert result.rows_failed == 1
        body = json.loads(received[0].content)
        assert body == {"entity": "Invoice", "records": [{"ACCOUNT_EMAIL": "a@example.com"}, {"ACCOUNT_EMAIL": "b@example.com"}]}
        assert received[0].headers["Authorization"] == "Bearer secret"
        await writer.close()

    async def test_webhook_without_counts_assumes_all_processed(self):
        writer = WebhookTargetWriter(client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204))))
        result = await writer.write_target(batch("webhook"), AccountContext(base_url="https://hooks.test/x"))
        assert result.rows_processed == 2
        assert result.rows_failed == 0
        await writer.close()

    async def test_webhook_rejection(self):
        writer = WebhookTargetWriter(client=httpx.AsyncClient(transport=httpx.MockTransport(
            lambda r: httpx.Response(500, text="upstream down")
        )))
        with pytest.raises(TargetWriteError, match="Target rejected the batch \\(500\\)"):
            await writer.write_target(batch("webhook"), AccountContext(base_url="https://hooks.test/x"))
        await writer.close()

    async def test_webhook_requires_url(self):
        writer = WebhookTargetWriter(client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
        with pytest.raises(TargetWriteError, match="no URL configured"):
            await writer.write_target(batch("webhook"), AccountContext())
        await writer.close()


def test_account_context_decrypts_token():
    connector = Connector(id=7, name="Sheets", type="googlesheets", api_token=encrypt_data("ya29.token"), settings=None)
    account = account_context_for(connector)
    assert account.api_token == "ya29.token"
    assert account.connector_id == 7
    assert account.settings == {}
    assert "ya29" not in repr(account)


def test_account_context_with_undecryptable_token():
    connector = Connector(id=8, name="Broken", type="googlesheets", api_token="not-a-fernet-token")
    assert account_context_for(connector).api_token is None


def test_account_context_without_connector():
    assert account_context_for(None) == AccountContext()
