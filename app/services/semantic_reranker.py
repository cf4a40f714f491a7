"""Last structured-search fallback: let the ranking model pick products"""

import logging

from app.core.config import Settings
from app.schemas.pipeline import StageClauses, StageResult
from app.schemas.search import SearchRequest
from app.services.query_builder import QueryBuilder, ids_query, to_query
from app.services.ranker_service import RankerService
from app.services.stage_executor import StageExecutor

logger = logging.getLogger(__name__)


class SemanticReranker:
    """
    Semantic stage of the search pipeline.

    1. Candidate pool: category-only filtered query (match_all when there is
       no category), projected to id + name.
    2. Ranker call with the verbatim user query. Skipped when the pool is empty.
    3. Re-fetch the ranked ids with facets. With AI_PRESERVE_RANKER_ORDER the
       ranked set (at most AI_MAX_RANKED_IDS) is fetched whole and paged in
       ranker order; otherwise Elasticsearch pages it.
    """

    def __init__(
        self,
        query_builder: QueryBuilder,
        executor: StageExecutor,
        ranker: RankerService,
        settings: Settings,
    ):
        self.query_builder = query_builder
        self.executor = executor
        self.ranker = ranker
        self.settings = settings

    def rerank(self, clauses: StageClauses, request: SearchRequest) -> StageResult:
        category_filters = self.query_builder.category_only(clauses).filters
        candidate_query = to_query(StageClauses(filters=category_filters))

        candidates = self.executor.fetch_candidates(candidate_query, self.settings.AI_CANDIDATE_POOL_SIZE)
        logger.info(f"🤖 AI candidate pool: {len(candidates)} products")
        if not candidates:
            return StageResult()

        ranked_ids = self.ranker.rank_ids(request.query_text.strip(), candidates)
        if not ranked_ids:
            return StageResult()

        if not self.settings.AI_PRESERVE_RANKER_ORDER:
            return self.executor.execute(ids_query(ranked_ids), request)

        # All ranked ids in one call, then page in ranker order
        result = self.executor.execute(ids_query(ranked_ids), request, from_=0, size=len(ranked_ids))
        reorder_by_rank(result, ranked_ids)

        size = request.effective_size(self.settings.DEFAULT_QUERY_SIZE)
        offset = request.offset(self.settings.DEFAULT_QUERY_SIZE, self.settings.DEFAULT_QUERY_PAGE)
        result.ids = result.ids[offset:offset + size]
        result.products = result.products[offset:offset + size]
        return result


def reorder_by_rank(result: StageResult, ranked_ids: list[str]) -> None:
    """Sort the fetched page in the ranker's order; unranked ids go last"""
    position = {doc_id: i for i, doc_id in enumerate(ranked_ids)}
    pairs = sorted(
        zip(result.ids, result.products),
        key=lambda pair: position.get(pair[0], len(ranked_ids)),
    )
    result.ids = [doc_id for doc_id, _ in pairs]
    result.products = [product for _, product in pairs]
