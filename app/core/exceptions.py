"""Exceptions raised by the product search pipeline"""


class ProductSearchError(Exception):
    """Base class for failures that abort a search request"""

    code = "search_failed"


class SearchServiceUnavailableError(ProductSearchError):
    """Elasticsearch or the ranking model could not be reached or failed the call"""

    code = "unavailable"


class AISearchParsingError(ProductSearchError):
    """The ranking model replied without a parseable JSON array of ids"""

    code = "ai_parsing"


class NoContentAISearchError(ProductSearchError):
    """The ranking model replied with no content at all"""

    code = "ai_no_content"
