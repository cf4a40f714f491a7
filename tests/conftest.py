"""
Pytest configuration and shared fixtures for the product search tests.

Elasticsearch and OpenAI are replaced by MagicMock clients that return
canned response bodies.
"""
import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Settings require an API key; must be set before app modules are imported
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from app.core.config import Settings
from app.services.search_service import create_search_service


# ============================================================================
# Fixtures: Settings
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, OPENAI_API_KEY="test-key")


# ============================================================================
# Fixtures: Response Factories
# ============================================================================

def _product_source(name, brand="Puma", price=45.0, category="Shorts", skus=None):
    return {
        "name": name,
        "brand": brand,
        "price": price,
        "category": category,
        "skus": skus if skus is not None else [{"color": "Black", "size": "L"}],
    }


def _product_response(products, total=None, brands=None, prices=None):
    """products: list of (id, source) pairs"""
    hits = [{"_id": doc_id, "_score": 1.0, "_source": source} for doc_id, source in products]
    brands = brands if brands is not None else {}
    prices = prices if prices is not None else {"Cheap": 0, "Average": 0, "Expensive": 0}
    return {
        "hits": {
            "total": {"value": len(hits) if total is None else total, "relation": "eq"},
            "hits": hits,
        },
        "aggregations": {
            "brand": {"buckets": [{"key": k, "doc_count": v} for k, v in brands.items()]},
            "price_ranges": {"buckets": [{"key": k, "doc_count": v} for k, v in prices.items()]},
        },
    }


def _concept_response(concepts):
    """concepts: list of (type, original_term, search_terms)"""
    return {
        "hits": {
            "total": {"value": len(concepts), "relation": "eq"},
            "hits": [
                {
                    "_id": f"concept-{i}",
                    "_source": {"type": t, "original_term": term, "search_terms": list(terms)},
                }
                for i, (t, term, terms) in enumerate(concepts)
            ],
        }
    }


def _candidate_response(candidates):
    """candidates: list of (id, name)"""
    return {
        "hits": {
            "total": {"value": len(candidates), "relation": "eq"},
            "hits": [{"_id": doc_id, "_source": {"name": name}} for doc_id, name in candidates],
        }
    }


@pytest.fixture
def product_source():
    return _product_source


@pytest.fixture
def product_response():
    return _product_response


@pytest.fixture
def concept_response():
    return _concept_response


@pytest.fixture
def candidate_response():
    return _candidate_response


@pytest.fixture
def empty_product_response():
    return _product_response([])


@pytest.fixture
def completion():
    """Build a chat completion object with the given message content."""
    def _completion(content):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    return _completion


# ============================================================================
# Fixtures: Clients
# ============================================================================

@pytest.fixture
def es_client():
    return MagicMock()


@pytest.fixture
def openai_client():
    return MagicMock()


@pytest.fixture
def search_service(es_client, openai_client, settings):
    return create_search_service(es_client, openai_client, settings)
