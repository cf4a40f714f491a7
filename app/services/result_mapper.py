"""Maps raw Elasticsearch responses to products and facets"""

from typing import Any

from app.core.config import Settings
from app.schemas.pipeline import StageResult
from app.schemas.search import FacetBucket, Product, Sku


def map_product(source: dict[str, Any]) -> Product:
    skus = [
        Sku(color=sku.get("color"), size=sku.get("size"))
        for sku in source.get("skus") or []
        if sku
    ]
    return Product(
        brand=source.get("brand"),
        name=source.get("name"),
        price=source.get("price"),
        category=source.get("category"),
        skus=skus,
    )


def map_facets(aggregations: dict[str, Any] | None, settings: Settings) -> dict[str, list[FacetBucket]]:
    """
    Brand buckets as returned (count desc, key asc); price buckets always
    the three configured labels in fixed order, zero counts included.
    """
    aggregations = aggregations or {}

    brand_buckets = aggregations.get(settings.BRAND_FACET, {}).get("buckets", [])
    brands = [
        FacetBucket(value=str(bucket["key"]), count=bucket.get("doc_count", 0))
        for bucket in brand_buckets
    ]

    price_counts = {
        bucket.get("key"): bucket.get("doc_count", 0)
        for bucket in aggregations.get(settings.PRICE_RANGES_FACET, {}).get("buckets", [])
    }
    price_ranges = [
        FacetBucket(value=label, count=price_counts.get(label, 0))
        for label in settings.price_range_labels
    ]

    return {
        settings.BRAND_FACET: brands,
        settings.PRICE_RANGES_FACET: price_ranges,
    }


def map_stage_result(response: Any, settings: Settings) -> StageResult:
    """Convert a product search response; hits without a source are dropped"""
    body = getattr(response, "body", response)
    hits_section = body.get("hits") or {}

    products = []
    ids = []
    for hit in hits_section.get("hits", []):
        source = hit.get("_source")
        if not source:
            continue
        products.append(map_product(source))
        ids.append(hit.get("_id"))

    total = hits_section.get("total")
    if isinstance(total, dict):
        total_hits = total.get("value", 0)
    else:
        total_hits = total or 0

    return StageResult(
        products=products,
        total_hits=total_hits,
        facets=map_facets(body.get("aggregations"), settings),
        ids=ids,
    )
