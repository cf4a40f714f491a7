from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", frozen=True)

    APP_NAME: str = "Product Search API"
    LOG_LEVEL: str = "INFO"

    # Elasticsearch connection
    ES_HOST: str = "http://localhost:9200"
    ES_USERNAME: str | None = None
    ES_PASSWORD: str | None = None
    ES_REQUEST_TIMEOUT: float = 10.0

    # Indices
    PRODUCT_INDEX: str = "products"
    CONCEPT_INDEX: str = "concepts"
    CONCEPT_SEARCH_TERMS_FIELD: str = "search_terms"
    CONCEPT_LOOKUP_SIZE: int = 50

    # Product document fields
    NAME_FIELD: str = "name"
    NAME_SHINGLES_FIELD: str = "name.shingles"
    BRAND_KEYWORD_FIELD: str = "brand.keyword"
    PRICE_FIELD: str = "price"
    KEYWORD_SUFFIX: str = "keyword"
    NESTED_SKUS_PATH: str = "skus"
    CATEGORY_CONCEPT_TYPE: str = "category"

    # Relevance boosts
    MUST_BOOST: float = 2.0
    SHOULD_BOOST: float = 5.0

    # Pagination defaults
    DEFAULT_QUERY_SIZE: int = 10
    DEFAULT_QUERY_PAGE: int = 0

    # Facets
    BRAND_FACET: str = "brand"
    PRICE_RANGES_FACET: str = "price_ranges"
    CHEAP_LABEL: str = "Cheap"
    AVERAGE_LABEL: str = "Average"
    EXPENSIVE_LABEL: str = "Expensive"
    CHEAP_PRICE: float = 100.0  # upper bound of "Cheap", lower bound of "Average"
    EXPENSIVE_PRICE: float = 500.0  # upper bound of "Average", lower bound of "Expensive"

    # OpenAI settings
    OPENAI_API_KEY: str
    AI_MODEL: str = "gpt-4o-mini"
    AI_TEMPERATURE: float = 0.0
    AI_MAX_TOKENS: int = 500
    AI_TIMEOUT: float = 30.0
    AI_CANDIDATE_POOL_SIZE: int = 100  # Candidates sent to the ranker
    AI_MAX_RANKED_IDS: int = 20
    AI_PRESERVE_RANKER_ORDER: bool = True

    @property
    def price_range_labels(self) -> tuple[str, str, str]:
        return (self.CHEAP_LABEL, self.AVERAGE_LABEL, self.EXPENSIVE_LABEL)


@lru_cache
def get_settings() -> Settings:
    return Settings()
