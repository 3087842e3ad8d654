"""
Factories for the OpenAI and Pinecone SDK clients.

Clients are built once per distinct setting values and then shared, so a
summary request does not pay for new HTTP pools or an index host lookup.
"""

from functools import lru_cache
from typing import Any, Optional

from openai import OpenAI
from pinecone import Pinecone

from app.config import settings


class AIConfigurationError(ValueError):
    """Raised when a required AI credential or index setting is missing."""


@lru_cache(maxsize=4)
def _openai_client(api_key: str, timeout: float, max_retries: int) -> OpenAI:
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)


@lru_cache(maxsize=4)
def _pinecone_index(api_key: str, index_name: str, index_host: str) -> Any:
    client = Pinecone(api_key=api_key)
    if index_host:
        return client.Index(name=index_name, host=index_host)

    return client.Index(index_name)


def build_openai_client() -> OpenAI:
    """OpenAI SDK v1 client using the configured key, timeout and retry budget."""
    if not settings.OPENAI_API_KEY:
        raise AIConfigurationError("OPENAI_API_KEY is missing")

    return _openai_client(
        settings.OPENAI_API_KEY,
        settings.OPENAI_TIMEOUT_SEC,
        settings.OPENAI_MAX_RETRIES,
    )


def build_pinecone_index() -> Optional[Any]:
    """
    Pinecone index handle, or None when the vector store is not configured.

    PINECONE_INDEX_HOST targets a serverless index directly; otherwise the
    host is resolved from PINECONE_INDEX_NAME.
    """
    if not settings.vector_store_configured:
        return None

    return _pinecone_index(
        settings.PINECONE_API_KEY,
        settings.PINECONE_INDEX_NAME,
        settings.PINECONE_INDEX_HOST or "",
    )


def clear_client_cache() -> None:
    """Drop shared clients so the next call rebuilds them."""
    _openai_client.cache_clear()
    _pinecone_index.cache_clear()
