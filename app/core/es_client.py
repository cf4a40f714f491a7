import logging
from functools import lru_cache

from elasticsearch import Elasticsearch

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_es_client() -> Elasticsearch:
    """Shared Elasticsearch client (thread-safe, pooled connections)"""
    settings = get_settings()

    basic_auth = None
    if settings.ES_USERNAME and settings.ES_PASSWORD:
        basic_auth = (settings.ES_USERNAME, settings.ES_PASSWORD)

    client = Elasticsearch(
        settings.ES_HOST,
        basic_auth=basic_auth,
        request_timeout=settings.ES_REQUEST_TIMEOUT,
        max_retries=0,
        retry_on_timeout=False,
    )
    logger.info(f"Elasticsearch client created for {settings.ES_HOST}")
    return client


def close_es_client() -> None:
    if get_es_client.cache_info().currsize:
        get_es_client().close()
        get_es_client.cache_clear()
        logger.info("Elasticsearch connection closed")
