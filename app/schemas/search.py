from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# from + size must stay within the index.max_result_window default of 10,000
MAX_PAGE_SIZE = 100
MAX_PAGE = 99


class CamelModel(BaseModel):
    """Public models are exchanged in camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(CamelModel):
    """Free-text product search request"""
    query_text: str | None = Field(default=None, description="Free-text search query")
    size: int | None = Field(default=None, ge=1, le=MAX_PAGE_SIZE, description="Page size (defaults from settings)")
    page: int | None = Field(default=None, ge=0, le=MAX_PAGE, description="Zero-based page (defaults from settings)")

    def effective_size(self, default_size: int) -> int:
        return default_size if self.size is None else self.size

    def effective_page(self, default_page: int) -> int:
        return default_page if self.page is None else self.page

    def offset(self, default_size: int, default_page: int) -> int:
        return self.effective_size(default_size) * self.effective_page(default_page)


class Sku(CamelModel):
    color: str | None = None
    size: str | None = None


class Product(CamelModel):
    """Single product as returned to the caller"""
    brand: str | None = None
    name: str | None = None
    price: float | None = None
    category: str | None = None
    skus: list[Sku] = Field(default_factory=list)


class FacetBucket(CamelModel):
    value: str
    count: int


class SearchResponse(CamelModel):
    """Response model for product search"""
    total_hits: int
    message: str
    products: list[Product]
    facets: dict[str, list[FacetBucket]]  # "brand" and "price_ranges"
