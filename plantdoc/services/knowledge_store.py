"""
Knowledge store client for Plant Doctor.

Disease descriptions, symptoms and treatments live in a remote
Supabase (PostgREST) table keyed by the taxonomy class identity. The
pipeline only needs one operation from it:

    lookup(class_identity) -> DiseaseRecord | None

Usage:
    from plantdoc.services.knowledge_store import get_knowledge_store

    store = get_knowledge_store()
    record = await store.lookup("Apple___Black_rot")
"""

import logging
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from plantdoc.core.config import get_settings
from plantdoc.core.errors import EnrichmentError
from plantdoc.models.diagnosis import DiseaseRecord

logger = logging.getLogger(__name__)

# HTTP connection pool
POOL_MAX_CONNECTIONS = 10
POOL_MAX_KEEPALIVE = 5


class KnowledgeStore(Protocol):
    async def lookup(self, class_identity: str) -> Optional[DiseaseRecord]:
        ...


class PostgrestKnowledgeStore:
    """
    Reads disease records from a PostgREST ``diseases`` table.

    Rows are matched on ``class_name``; the first row wins. Network and
    HTTP errors raise EnrichmentError, a missing row returns None.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        table: str = "diseases",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._table = table
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._api_key:
                headers["apikey"] = self._api_key
                headers["Authorization"] = f"Bearer {self._api_key}"

            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                limits=httpx.Limits(
                    max_connections=POOL_MAX_CONNECTIONS,
                    max_keepalive_connections=POOL_MAX_KEEPALIVE,
                ),
                transport=self._transport,
            )
            logger.info(f"Knowledge store client created for {self._base_url}")
        return self._client

    async def lookup(self, class_identity: str) -> Optional[DiseaseRecord]:
        """
        Fetch the disease record for a class identity.

        Args:
            class_identity: Taxonomy class identity (never the numeric index)

        Returns:
            DiseaseRecord, or None when the store has no row for it

        Raises:
            EnrichmentError: If the store is unconfigured, unreachable,
                answers with an error status or returns malformed data
        """
        if not self.configured:
            raise EnrichmentError("Knowledge store URL is not configured")

        params = {
            "select": "description,treatment,symptoms",
            "class_name": f"eq.{class_identity}",
            "limit": "1",
        }

        try:
            response = await self._get_client().get(f"/rest/v1/{self._table}", params=params)
            response.raise_for_status()
            rows = response.json()
        except httpx.TimeoutException as e:
            raise EnrichmentError(f"Knowledge store timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise EnrichmentError(
                f"Knowledge store returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise EnrichmentError(f"Knowledge store unreachable: {e}") from e
        except ValueError as e:
            raise EnrichmentError(f"Knowledge store returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise EnrichmentError(f"Unexpected knowledge store payload: {type(rows).__name__}")
        if not rows:
            logger.info(f"No disease record for '{class_identity}'")
            return None

        try:
            return DiseaseRecord.model_validate(rows[0])
        except ValidationError as e:
            raise EnrichmentError(f"Malformed disease record for '{class_identity}': {e}") from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Knowledge store client closed")


# Module-level singleton instance
_knowledge_store: Optional[PostgrestKnowledgeStore] = None


def get_knowledge_store() -> PostgrestKnowledgeStore:
    """
    Get the singleton knowledge store configured from settings.

    An empty ``knowledge_store_url`` yields a store whose lookups raise
    EnrichmentError, so results degrade to model-only data.
    """
    global _knowledge_store
    if _knowledge_store is None:
        settings = get_settings()
        _knowledge_store = PostgrestKnowledgeStore(
            base_url=settings.knowledge_store_url,
            api_key=settings.knowledge_store_key,
            table=settings.knowledge_store_table,
            timeout=settings.enrichment_timeout_seconds,
        )
    return _knowledge_store


def reset_knowledge_store() -> None:
    """Reset the knowledge store singleton (used by tests)."""
    global _knowledge_store
    _knowledge_store = None
