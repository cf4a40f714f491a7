"""Search service: staged product search with progressive relaxation"""

import logging
from enum import Enum
from functools import lru_cache

from app.core.config import Settings, get_settings
from app.core.es_client import get_es_client
from app.core.openai_client import get_openai_client
from app.schemas.pipeline import StageClauses, StageResult
from app.schemas.search import SearchRequest, SearchResponse
from app.services.concept_resolver import ConceptResolver
from app.services.query_builder import QueryBuilder, to_query
from app.services.ranker_service import RankerService
from app.services.semantic_reranker import SemanticReranker
from app.services.stage_executor import StageExecutor

logger = logging.getLogger(__name__)


class SearchStage(str, Enum):
    STRICT = "strict"
    CATEGORY_RELAXED = "category_relaxed"
    AI_SEMANTIC = "ai_semantic"
    EMPTY = "empty"


class SearchMessage(str, Enum):
    STRICT_SUCCESS = "Here's what we found for your search"
    CATEGORY_RELAXED_SUCCESS = "No matches with your filters, here are some suggestions"
    AI_SEMANTIC_SUCCESS = "Here are the closest matches to your description"
    NO_RESULTS = "We couldn't find any products matching your request"


STAGE_ORDER = (SearchStage.STRICT, SearchStage.CATEGORY_RELAXED, SearchStage.AI_SEMANTIC)

STAGE_MESSAGES = {
    SearchStage.STRICT: SearchMessage.STRICT_SUCCESS,
    SearchStage.CATEGORY_RELAXED: SearchMessage.CATEGORY_RELAXED_SUCCESS,
    SearchStage.AI_SEMANTIC: SearchMessage.AI_SEMANTIC_SUCCESS,
    SearchStage.EMPTY: SearchMessage.NO_RESULTS,
}


def build_empty_response() -> SearchResponse:
    return SearchResponse(
        total_hits=0,
        message=SearchMessage.NO_RESULTS.value,
        products=[],
        facets={},
    )


class SearchService:
    """
    Staged product search.

    Search Flow:
    1. Concept resolution: query tokens → brand/category/color/size concepts
       plus the remaining free text (one concept index read).
    2. Base clauses built once from the concepts and reused by every stage.
    3. Stages, each tried only if the previous one returned no products:
       - STRICT: all filters + name match
       - CATEGORY_RELAXED: only the category filter + name match
       - AI_SEMANTIC: ranking model picks from the category's products
    4. EMPTY when nothing matched.

    Infrastructure failures abort the request; only "found nothing" falls
    through to the next stage.
    """

    def __init__(
        self,
        concept_resolver: ConceptResolver,
        query_builder: QueryBuilder,
        executor: StageExecutor,
        reranker: SemanticReranker,
    ):
        self.concept_resolver = concept_resolver
        self.query_builder = query_builder
        self.executor = executor
        self.reranker = reranker

    def search(self, request: SearchRequest) -> SearchResponse:
        if request.query_text is None or not request.query_text.strip():
            logger.info("Empty query text, returning no results")
            return build_empty_response()

        resolved = self.concept_resolver.resolve(request.query_text)
        clauses = self.query_builder.build(resolved.concepts, resolved.free_text)

        for stage in STAGE_ORDER:
            result = self.run_stage(stage, clauses, request)
            logger.info(f"✅ Stage {stage.value}: {len(result.products)} products, {result.total_hits} hits")
            if not result.is_empty:
                return SearchResponse(
                    total_hits=result.total_hits,
                    message=STAGE_MESSAGES[stage].value,
                    products=result.products,
                    facets=result.facets,
                )

        logger.info(f"No stage matched query '{request.query_text}'")
        return build_empty_response()

    def run_stage(self, stage: SearchStage, clauses: StageClauses, request: SearchRequest) -> StageResult:
        if stage is SearchStage.STRICT:
            return self.executor.execute(to_query(clauses), request)
        if stage is SearchStage.CATEGORY_RELAXED:
            return self.executor.execute(to_query(self.query_builder.category_only(clauses)), request)
        if stage is SearchStage.AI_SEMANTIC:
            return self.reranker.rerank(clauses, request)
        raise ValueError(f"Stage {stage} does not run a query")

    def get_health_status(self) -> dict:
        """Get search service health status"""
        settings = self.executor.settings
        try:
            alive = self.executor.es_client.ping()
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}
        return {
            "status": "healthy" if alive else "unhealthy",
            "product_index": settings.PRODUCT_INDEX,
            "concept_index": settings.CONCEPT_INDEX,
        }


def create_search_service(es_client, openai_client, settings: Settings) -> SearchService:
    query_builder = QueryBuilder(settings)
    executor = StageExecutor(es_client, settings)
    return SearchService(
        concept_resolver=ConceptResolver(es_client, settings),
        query_builder=query_builder,
        executor=executor,
        reranker=SemanticReranker(
            query_builder=query_builder,
            executor=executor,
            ranker=RankerService(openai_client, settings),
            settings=settings,
        ),
    )


@lru_cache
def get_search_service() -> SearchService:
    """Get cached search service instance"""
    return create_search_service(get_es_client(), get_openai_client(), get_settings())
