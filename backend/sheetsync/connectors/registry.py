"""Builds readers, writers and account contexts from stored connector configuration."""

import logging
from typing import Optional

from sheetsync.connectors.base import AccountContext, SourceReader, TargetWriter
from sheetsync.connectors.googlesheets_connector import GoogleSheetsReader
from sheetsync.connectors.target_writers import MockTargetWriter, TargetWriterRouter, WebhookTargetWriter
from sheetsync.models.connector import Connector
from sheetsync.utils.encrypt import try_decrypt

log = logging.getLogger(__name__)

SOURCE_TYPES = {"googlesheets"}

# Targets without a wired-up write API are served by the mock writer
MOCK_TARGET_TYPES = ("quickbooks", "billcom", "hubspot", "salesforce", "mock")


def account_context_for(connector: Optional[Connector]) -> AccountContext:
    """Decrypt a connector row into the context handed to readers and writers."""
    if connector is None:
        return AccountContext()
    token = try_decrypt(connector.api_token)
    if connector.api_token and token is None:
        log.warning(f"Could not decrypt credentials of connector {connector.id} ('{connector.name}')")
    return AccountContext(
        connector_id=connector.id,
        connector_type=connector.type,
        base_url=connector.base_url,
        api_token=token,
        settings=connector.settings or {},
    )


def build_source_reader() -> SourceReader:
    return GoogleSheetsReader()


def build_target_writer() -> TargetWriter:
    mock = MockTargetWriter()
    router = TargetWriterRouter({name: mock for name in MOCK_TARGET_TYPES})
    router.register("webhook", WebhookTargetWriter())
    return router
