"""Runs one search stage against the product index"""

import logging
from typing import Any

from elasticsearch import ApiError, Elasticsearch, TransportError

from app.core.config import Settings
from app.core.exceptions import SearchServiceUnavailableError
from app.schemas.pipeline import AICandidateDoc, StageResult
from app.schemas.search import SearchRequest
from app.services.result_mapper import map_stage_result

logger = logging.getLogger(__name__)


class StageExecutor:
    """Paginated, relevance-sorted product search with brand and price facets"""

    def __init__(self, es_client: Elasticsearch, settings: Settings):
        self.es_client = es_client
        self.settings = settings

    def build_aggregations(self, size: int) -> dict[str, Any]:
        s = self.settings
        return {
            s.BRAND_FACET: {
                "terms": {
                    "field": s.BRAND_KEYWORD_FIELD,
                    "size": size,
                    "order": [{"_count": "desc"}, {"_key": "asc"}],
                }
            },
            s.PRICE_RANGES_FACET: {
                "range": {
                    "field": s.PRICE_FIELD,
                    "ranges": [
                        {"key": s.CHEAP_LABEL, "to": s.CHEAP_PRICE},
                        {"key": s.AVERAGE_LABEL, "from": s.CHEAP_PRICE, "to": s.EXPENSIVE_PRICE},
                        {"key": s.EXPENSIVE_LABEL, "from": s.EXPENSIVE_PRICE},
                    ],
                }
            },
        }

    def execute(
        self,
        query: dict[str, Any],
        request: SearchRequest,
        from_: int | None = None,
        size: int | None = None,
    ) -> StageResult:
        """
        Run a fully formed query with pagination and facets.

        `from_` and `size` override the request's page window; the brand
        facet size always follows the request.

        Raises:
            SearchServiceUnavailableError: Elasticsearch call failed (no retry)
        """
        page_size = request.effective_size(self.settings.DEFAULT_QUERY_SIZE)
        if from_ is None:
            from_ = request.offset(self.settings.DEFAULT_QUERY_SIZE, self.settings.DEFAULT_QUERY_PAGE)
        if size is None:
            size = page_size

        logger.debug(f"Stage query: {query}")

        response = self._search(
            query=query,
            from_=from_,
            size=size,
            sort=[{"_score": {"order": "desc"}}],
            aggs=self.build_aggregations(page_size),
            track_total_hits=True,
        )
        return map_stage_result(response, self.settings)

    def fetch_candidates(self, query: dict[str, Any], size: int) -> list[AICandidateDoc]:
        """Id and name only, for the ranking prompt"""
        response = self._search(
            query=query,
            size=size,
            source=[self.settings.NAME_FIELD],
        )

        body = getattr(response, "body", response)
        candidates = []
        for hit in body.get("hits", {}).get("hits", []):
            name = (hit.get("_source") or {}).get(self.settings.NAME_FIELD)
            if hit.get("_id") and name:
                candidates.append(AICandidateDoc(id=hit["_id"], name=name))
        return candidates

    def _search(self, **kwargs):
        try:
            return self.es_client.search(index=self.settings.PRODUCT_INDEX, **kwargs)
        except (ApiError, TransportError) as e:
            logger.error(f"❌ Search stage failed: {e}")
            raise SearchServiceUnavailableError(f"Product index unavailable: {e}") from e
