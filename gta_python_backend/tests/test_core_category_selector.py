"""
Tests for core category selection.

Run with: pytest tests/test_core_category_selector.py -v
"""

import pytest

from gta_python_backend.schemas import ConceptType, ParadigmModel
from gta_python_backend.services.core_category_selector import (
    CONTRADICTING_FACTORS,
    CoreCategorySelector,
    bucket_scores,
    core_confidence,
)
from gta_python_backend.services.paradigm_model_builder import PLACEHOLDER_PHENOMENON, refine_categories
from tests.conftest import create_concept, create_relation


@pytest.fixture
def concepts():
    return [
        create_concept("p1", "isolation", ConceptType.PHENOMENON),
        create_concept("c1", "overtime", ConceptType.CAUSAL_CONDITION),
        create_concept("c2", "understaffing", ConceptType.CAUSAL_CONDITION),
        create_concept("r1", "turnover", ConceptType.CONSEQUENCE),
    ]


def test_bucket_scores_via_category_membership(concepts):
    categories = refine_categories(concepts)
    relations = [
        create_relation("c1", "p1", 0.5),
        create_relation("c2", "p1", 0.4),
        create_relation("c1", "c2", 0.7),
        create_relation("p1", "r1", 0.2),
    ]

    scores = bucket_scores(categories, relations)

    assert scores[ConceptType.CAUSAL_CONDITION] == pytest.approx(1.6)
    assert scores[ConceptType.PHENOMENON] == pytest.approx(1.1)
    assert scores[ConceptType.CONSEQUENCE] == pytest.approx(0.2)


def test_select_core_category(concepts):
    categories = refine_categories(concepts)
    relations = [create_relation("c1", "p1", 0.5), create_relation("c1", "c2", 0.7)]
    paradigm = ParadigmModel(phenomenon="isolation", causal_conditions=["overtime", "understaffing"])

    core = CoreCategorySelector().select(categories, relations, paradigm)

    assert core.id == "core_category_1"
    assert core.name == "isolation"
    assert core.central_phenomenon == "isolation"
    assert core.supporting_concepts == ["p1", "c1", "c2", "r1"]
    assert core.contradicting_factors == CONTRADICTING_FACTORS
    assert core.confidence == pytest.approx(0.62)
    assert "causal_condition" in core.description


def test_supporting_concepts_capped_at_eight():
    concepts = [create_concept(f"p{i}") for i in range(6)]
    concepts += [create_concept(f"s{i}", concept_type=ConceptType.ACTION_STRATEGY) for i in range(6)]

    core = CoreCategorySelector().select(refine_categories(concepts), [], ParadigmModel(phenomenon="p0"))

    assert core.supporting_concepts == ["p0", "p1", "p2", "p3", "p4", "p5", "s0", "s1"]


@pytest.mark.parametrize("relation_count,expected", [(0, 0.6), (10, 0.7), (30, 0.9), (500, 0.9)])
def test_core_confidence_formula(relation_count, expected):
    assert core_confidence(relation_count) == pytest.approx(expected)


def test_empty_axial_result_keeps_placeholder():
    core = CoreCategorySelector().select([], [], ParadigmModel(phenomenon=PLACEHOLDER_PHENOMENON))

    assert core.name == PLACEHOLDER_PHENOMENON
    assert core.supporting_concepts == []
    assert core.confidence == pytest.approx(0.6)
