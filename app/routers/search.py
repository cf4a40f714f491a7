import logging

from fastapi import APIRouter, HTTPException, status

from app.core.exceptions import (
    AISearchParsingError,
    NoContentAISearchError,
    ProductSearchError,
    SearchServiceUnavailableError,
)
from app.schemas.search import SearchRequest, SearchResponse
from app.services.search_service import get_search_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["search"])


def error_detail(error: ProductSearchError) -> dict:
    """Machine-readable error kind plus the human message"""
    return {"error": error.code, "message": str(error)}


@router.post("", response_model=SearchResponse)
def search_products(request: SearchRequest):
    """
    Staged free-text product search.

    🔍 **Stages** (each tried only when the previous one found nothing):

    1. **Strict**: recognised brand/category/color/size filters + name match
    2. **Category relaxed**: only the category filter + name match
    3. **AI semantic**: a language model ranks the category's products by name
    4. **Empty**: nothing matched, `message` says so

    The `message` field tells which stage answered.

    📝 **Examples:**
        ```json
        {"queryText": "puma shorts black L"}
        {"queryText": "jacket", "size": 20, "page": 1}
        {"queryText": "warm outerwear with soft interior for cold weather"}
        ```
    """
    search_service = get_search_service()
    try:
        return search_service.search(request)
    except SearchServiceUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=error_detail(e))
    except (AISearchParsingError, NoContentAISearchError) as e:
        logger.error(f"❌ AI search failed ({e.code}): {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error_detail(e))


@router.get("/health")
def search_health():
    """Check if search service is healthy"""
    try:
        search_service = get_search_service()
        return search_service.get_health_status()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
