"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets is used as the hosted document store because:
1. Users can look at their own data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

LAYOUT: one worksheet per collection, one document per row:
    id | uid | created_at | data_json

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: concurrent writers are last-write-wins
- Limited query capabilities (we filter and sort in Python)
- No push channel: live queries poll the worksheet

Only connection setup and reads are retried. Writes are not, so a
failed write is never silently applied twice.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.documents import CollectionQuery, Document
from finance_tracker.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.live import LiveQuery


logger = structlog.get_logger(__name__)

# Column layout shared by every collection worksheet
DOCUMENT_COLUMNS = [
    "id",
    "uid",
    "created_at",
    "data_json",
]

read_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and lazily creates collection worksheets.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(collection)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=collection,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)
            logger.info("worksheet_created", collection=collection)

        self._worksheets[collection] = sheet
        return sheet


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    The document body is JSON-serialized into one cell; `uid` and
    `created_at` are duplicated into their own columns so the sheet stays
    readable for humans.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_interval = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else self._client.settings.poll_interval_seconds
        )
        self._pollers: dict[int, asyncio.Task] = {}

    def _document_to_row(self, document_id: str, data: dict[str, Any]) -> list:
        """Convert a document to a spreadsheet row."""
        return [
            document_id,
            str(data.get("uid", "")),
            str(data.get("createdAt", datetime.now(timezone.utc).isoformat())),
            json.dumps(data, sort_keys=True),
        ]

    def _row_to_document(self, row: list) -> Document:
        """Convert a spreadsheet row to a Document."""
        data_json = row[3] if len(row) > 3 else ""
        return Document(id=row[0], data=json.loads(data_json) if data_json else {})

    @read_retry
    def _read_rows(self, collection: str) -> list[list]:
        """All data rows of a collection (header excluded)."""
        return self._client.get_collection_sheet(collection).get_all_values()[1:]

    def _find_row(self, collection: str, document_id: str) -> Optional[tuple[int, list]]:
        """Return (sheet_row_number, row) for a document id."""
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(self._read_rows(collection), start=2):
            if row and row[0] == document_id:
                return idx, row
        return None

    def _write_row(self, collection: str, row_number: int, row: list) -> None:
        sheet = self._client.get_collection_sheet(collection)
        sheet.update(
            range_name=f"A{row_number}:D{row_number}",
            values=[row],
            value_input_option="RAW",
        )

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """Append a new document row."""
        document_id = uuid4().hex
        try:
            sheet = self._client.get_collection_sheet(collection)
            sheet.append_row(
                self._document_to_row(document_id, data),
                value_input_option="RAW",
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add document to {collection}: {e}")
        return document_id

    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        try:
            found = self._find_row(collection, document_id)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get document: {e}")
        if found is None:
            return None
        return self._row_to_document(found[1])

    async def set_document(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        """Overwrite a document row in place."""
        try:
            found = self._find_row(collection, document_id)
            if found is None:
                raise NotFoundError(f"Document not found: {collection}/{document_id}")
            self._write_row(collection, found[0], self._document_to_row(document_id, data))
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to set document: {e}")

    async def update_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
    ) -> Document:
        """Merge fields into a document row."""
        try:
            found = self._find_row(collection, document_id)
            if found is None:
                raise NotFoundError(f"Document not found: {collection}/{document_id}")
            row_number, row = found
            data = {**self._row_to_document(row).data, **fields}
            self._write_row(collection, row_number, self._document_to_row(document_id, data))
            return Document(id=document_id, data=data)
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update document: {e}")

    async def delete_document(self, collection: str, document_id: str) -> bool:
        try:
            found = self._find_row(collection, document_id)
            if found is None:
                return False
            self._client.get_collection_sheet(collection).delete_rows(found[0])
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete document: {e}")

    async def run_query(self, query: CollectionQuery) -> list[Document]:
        """Read the whole worksheet and filter in Python."""
        try:
            rows = self._read_rows(query.collection)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to query {query.collection}: {e}")

        documents = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                documents.append(self._row_to_document(row))
            except (json.JSONDecodeError, ValueError):
                logger.warning(
                    "malformed_row_skipped",
                    collection=query.collection,
                    document_id=row[0],
                )
        return query.apply(documents)

    def subscribe(self, query: CollectionQuery) -> LiveQuery:
        """
        Start a polling live query.

        Must be called from a running event loop.
        """
        live = LiveQuery(query, on_cancel=self._stop_polling)
        task = asyncio.get_running_loop().create_task(self._poll(live))
        self._pollers[id(live)] = task
        return live

    async def _poll(self, live: LiveQuery) -> None:
        """Re-read the query until cancelled; LiveQuery drops unchanged results."""
        while live.active:
            try:
                live.push(await self.run_query(live.query))
            except StorageError as e:
                # Subscription stays open across failed polls
                logger.warning(
                    "live_query_poll_failed",
                    collection=live.query.collection,
                    error=str(e),
                )
            await asyncio.sleep(self._poll_interval)

    def _stop_polling(self, live: LiveQuery) -> None:
        task = self._pollers.pop(id(live), None)
        if task is not None:
            task.cancel()
