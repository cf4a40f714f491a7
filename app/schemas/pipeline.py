"""
Internal types shared by the search pipeline stages.

No I/O here: these are the values passed between the concept resolver,
query builder, stage executor and orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.schemas.search import FacetBucket, Product


@dataclass(frozen=True)
class ConceptMatch:
    """A query token recognised as a known brand/category/color/size"""

    type: str  # root field ("brand") or nested field ("skus.color")
    original_term: str
    search_terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedQuery:
    tokens: tuple[str, ...]
    concepts: tuple[ConceptMatch, ...]
    free_text: str


class FilterKind(str, Enum):
    ROOT = "root"
    NESTED = "nested"


@dataclass(frozen=True)
class FilterClause:
    """One AND'd filter entry; `query` is the rendered Elasticsearch clause"""

    kind: FilterKind
    field: str  # concept type for ROOT, nested path for NESTED
    query: dict[str, Any]


@dataclass(frozen=True)
class StageClauses:
    filters: tuple[FilterClause, ...] = ()
    must: tuple[dict[str, Any], ...] = ()
    should: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class AICandidateDoc:
    id: str
    name: str


@dataclass
class StageResult:
    products: list[Product] = field(default_factory=list)
    total_hits: int = 0
    facets: dict[str, list[FacetBucket]] = field(default_factory=dict)
    # Elasticsearch _id of each product, same order as `products`
    ids: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.products
