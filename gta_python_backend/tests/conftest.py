"""
Pytest configuration and shared fixtures for grounded-theory backend tests.

This module provides:
- Cluster fixtures built from the synthetic interview data
- A stub concept-extraction port (no network)
- Factories for concepts and relations used by component tests
- Invariant checking hooks
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from gta_python_backend.schemas import (
    Cluster,
    ConceptExtractionRequest,
    ConceptItem,
    ConceptRelation,
    ConceptType,
    RelationType,
)
from gta_python_backend.services.concept_categorizer import category_for_type
from tests.fixtures.synthetic_interview_clusters import (
    EMPTY_CLUSTER,
    HYBRID_OFFICE_CLUSTER,
    REMOTE_ONBOARDING_CLUSTER,
    REPEATED_TERMS_CLUSTER,
)


# ============================================================================
# Cluster Fixtures
# ============================================================================

@pytest.fixture
def onboarding_cluster():
    return Cluster.model_validate(REMOTE_ONBOARDING_CLUSTER)


@pytest.fixture
def office_cluster():
    return Cluster.model_validate(HYBRID_OFFICE_CLUSTER)


@pytest.fixture
def repeated_terms_cluster():
    return Cluster.model_validate(REPEATED_TERMS_CLUSTER)


@pytest.fixture
def empty_cluster():
    return Cluster.model_validate(EMPTY_CLUSTER)


@pytest.fixture
def interview_clusters(onboarding_cluster, office_cluster):
    return [onboarding_cluster, office_cluster]


# ============================================================================
# Stub Concept Extraction Port
# ============================================================================

class StubConceptExtractionPort:
    """
    In-memory ConceptExtractionPort.

    Returns ``payload`` for every request, raises ``error`` when set, and
    sleeps ``delay`` seconds first so timeouts can be exercised.
    """

    def __init__(self, payload: Any = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.payload = payload if payload is not None else {"success": True, "concepts": []}
        self.error = error
        self.delay = delay
        self.requests: List[ConceptExtractionRequest] = []

    async def extract_concepts(self, request: ConceptExtractionRequest) -> Dict[str, Any]:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def stub_port():
    return StubConceptExtractionPort()


# ============================================================================
# Test Data Factories
# ============================================================================

def create_concept(
    concept_id: str,
    label: Optional[str] = None,
    concept_type: ConceptType = ConceptType.PHENOMENON,
    relevance: float = 0.8,
    description: str = "",
    evidence: Optional[List[str]] = None,
    frequency: int = 2,
    cluster_id: str = "cluster-test",
) -> ConceptItem:
    """Create a categorized concept for testing."""
    return ConceptItem(
        id=concept_id,
        concept=label or concept_id,
        description=description,
        evidence=evidence or [],
        frequency=frequency,
        relevance=relevance,
        category=category_for_type(concept_type),
        cluster_id=cluster_id,
    )


def create_relation(
    source: str,
    target: str,
    strength: float = 0.5,
    relation_type: RelationType = RelationType.CAUSAL,
    evidence: Optional[List[str]] = None,
) -> ConceptRelation:
    """Create a directed relation for testing."""
    return ConceptRelation(
        id=f"relation_{source}_{target}",
        source_concept_id=source,
        target_concept_id=target,
        relation_type=relation_type,
        strength=strength,
        evidence=evidence or [f"{source} -> {target}"],
        bidirectional=relation_type == RelationType.CORRELATIONAL,
    )


# ============================================================================
# Pytest Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
