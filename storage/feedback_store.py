from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict

import httpx

from models.schemas import FeedbackRecord
from settings import SETTINGS

logger = logging.getLogger(__name__)


class FeedbackStoreError(RuntimeError):
    pass


class FeedbackStore(ABC):
    """Append-only sink for survey summaries and advisor turns."""

    @abstractmethod
    async def append(self, record: FeedbackRecord) -> None:
        raise NotImplementedError


class JsonlFeedbackStore(FeedbackStore):
    def __init__(self, path: str | None = None) -> None:
        self.path = path or SETTINGS.feedback_log_path
        self._lock = Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    async def append(self, record: FeedbackRecord) -> None:
        line = json.dumps(record.model_dump(mode="json"), ensure_ascii=True)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")


class SupabaseFeedbackStore(FeedbackStore):
    """Inserts rows through the hosted backend's REST interface."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        table: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or SETTINGS.supabase_url).rstrip("/")
        self.service_key = service_key or SETTINGS.supabase_service_role_key
        self.table = table or SETTINGS.supabase_feedback_table
        self._transport = transport

    def _row(self, record: FeedbackRecord) -> Dict[str, Any]:
        payload = record.model_dump(mode="json", exclude_none=True)
        # The hosted table names the reply column after the AI revision.
        payload["ai_response"] = payload.pop("bot_response")
        payload["created_at"] = payload.pop("timestamp")
        return payload

    async def append(self, record: FeedbackRecord) -> None:
        if not self.base_url or not self.service_key:
            raise FeedbackStoreError("supabase_not_configured")
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        async with httpx.AsyncClient(timeout=SETTINGS.llm_timeout_seconds, transport=self._transport) as client:
            resp = await client.post(f"{self.base_url}/rest/v1/{self.table}", headers=headers, json=self._row(record))
        if resp.status_code >= 400:
            raise FeedbackStoreError(f"supabase_insert_failed:{resp.status_code}")


def build_feedback_store() -> FeedbackStore:
    if SETTINGS.supabase_url and SETTINGS.supabase_service_role_key:
        logger.info("feedback_store_selected", extra={"backend": "supabase"})
        return SupabaseFeedbackStore()
    logger.info("feedback_store_selected", extra={"backend": "jsonl", "path": SETTINGS.feedback_log_path})
    return JsonlFeedbackStore()
