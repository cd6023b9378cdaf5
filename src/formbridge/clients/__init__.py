"""Record store clients."""

from formbridge.clients.airtable import AirtableClient
from formbridge.clients.protocols import CreatedRecord, RawRecord, RecordSort, RecordStoreClient

__all__ = ["AirtableClient", "CreatedRecord", "RawRecord", "RecordSort", "RecordStoreClient"]
