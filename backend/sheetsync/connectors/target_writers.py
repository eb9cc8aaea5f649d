import asyncio
import httpx
import logging
from typing import Dict, Optional

from sheetsync.connectors.base import AccountContext, RecordBatch, TargetWriter, WriteResult
from sheetsync.config import settings
from sheetsync.exceptions import TargetWriteError
from sheetsync.utils.timeutils import utcnow

log = logging.getLogger(__name__)


class MockTargetWriter(TargetWriter):
    """
    Stand-in for target systems whose write API is not wired up (QuickBooks, Bill.com, CRMs).
    Accepts every record and reports it as processed.
    """

    def __init__(self, simulated_latency: float = 0.0):
        self.simulated_latency = simulated_latency

    async def write_target(self, batch: RecordBatch, account: AccountContext) -> WriteResult:
        target = batch.target
        log.info(f"Writing {len(batch.records)} rows to {target.system_type} ({target.entity_type})")
        log.debug(f"Sample data: {batch.records[:2]}")
        if self.simulated_latency:
            await asyncio.sleep(self.simulated_latency)
        return WriteResult(
            rows_processed=len(batch.records),
            rows_failed=0,
            details={
                "target_type": target.system_type,
                "target_entity": target.entity_type,
                "processed_at": utcnow().isoformat(),
            }
        )


class WebhookTargetWriter(TargetWriter):
    """POSTs the batch as JSON to the target connector's URL."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    async def close(self):
        await self.client.aclose()

    async def write_target(self, batch: RecordBatch, account: AccountContext) -> WriteResult:
        if not account.base_url:
            raise TargetWriteError("Webhook target has no URL configured")

        headers = {"Content-Type": "application/json"}
        if account.api_token:
            headers["Authorization"] = f"Bearer {account.api_token}"
        payload = {
            "entity": batch.target.entity_type,
            "records": batch.records,
        }
        try:
            response = await self.client.post(account.base_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"Webhook rejected batch: {e.response.status_code} - {e.response.text}")
            raise TargetWriteError(f"Target rejected the batch ({e.response.status_code}): {e.response.text}")
        except httpx.RequestError as e:
            log.error(f"Webhook request error for {e.request.url}: {e}")
            raise TargetWriteError(f"Could not reach target: {e}")

        body = {}
        if response.content:
            try:
                body = response.json()
            except ValueError:
                log.debug("Webhook response was not JSON, assuming every row was accepted")
        if not isinstance(body, dict):
            body = {}
        rows_processed = int(body.get("rows_processed", body.get("rowsProcessed", len(batch.records))))
        rows_failed = int(body.get("rows_failed", body.get("rowsFailed", 0)))
        return WriteResult(
            rows_processed=rows_processed,
            rows_failed=rows_failed,
            details={
                "target_type": batch.target.system_type,
                "target_entity": batch.target.entity_type,
                "status_code": response.status_code,
                "processed_at": utcnow().isoformat(),
            }
        )


class TargetWriterRouter(TargetWriter):
    """Dispatches a batch to the writer registered for its target system type."""

    def __init__(self, writers: Dict[str, TargetWriter]):
        self.writers = {key.lower(): writer for key, writer in writers.items()}

    def register(self, system_type: str, writer: TargetWriter) -> None:
        self.writers[system_type.lower()] = writer

    async def close(self):
        for writer in set(self.writers.values()):
            close = getattr(writer, "close", None)
            if close is not None:
                await close()

    async def write_target(self, batch: RecordBatch, account: AccountContext) -> WriteResult:
        writer = self.writers.get(batch.target.system_type.lower())
        if writer is None:
            raise TargetWriteError(f"Unsupported target system: {batch.target.system_type}")
        return await writer.write_target(batch, account)
