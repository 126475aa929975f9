"""
Tests for axial-coding relation discovery.

Run with: pytest tests/test_relation_discoverer.py -v
"""

import random

import pytest

from gta_python_backend.schemas import AxialCodingSettings, ConceptType, RelationType
from gta_python_backend.services.relation_discoverer import (
    RelationDiscoverer,
    evidence_overlap,
    infer_relation_type,
    orient_pair,
    overall_similarity,
)
from tests.conftest import create_concept
from tests.invariants import assert_no_self_relations, assert_relation_strength_bounds


def _discover(concepts, **settings):
    return RelationDiscoverer().discover_relations(concepts, AxialCodingSettings(**settings))


@pytest.mark.parametrize(
    "source,target,expected",
    [
        (ConceptType.CAUSAL_CONDITION, ConceptType.PHENOMENON, RelationType.CAUSAL),
        (ConceptType.PHENOMENON, ConceptType.CONSEQUENCE, RelationType.CAUSAL),
        (ConceptType.CONTEXT, ConceptType.ACTION_STRATEGY, RelationType.CONDITIONAL),
        (ConceptType.INTERVENING_CONDITION, ConceptType.PHENOMENON, RelationType.CONDITIONAL),
        (ConceptType.ACTION_STRATEGY, ConceptType.CONSEQUENCE, RelationType.SEQUENTIAL),
        (ConceptType.CAUSAL_CONDITION, ConceptType.ACTION_STRATEGY, RelationType.SEQUENTIAL),
        (ConceptType.PHENOMENON, ConceptType.PHENOMENON, None),
    ],
)
def test_relation_type_rules(source, target, expected):
    assert infer_relation_type(source, target) == expected


def test_orient_pair_flips_to_match_directed_rule():
    consequence = create_concept("c", concept_type=ConceptType.CONSEQUENCE)
    phenomenon = create_concept("p", concept_type=ConceptType.PHENOMENON)

    source, target, relation_type = orient_pair(consequence, phenomenon)

    assert (source.id, target.id, relation_type) == ("p", "c", RelationType.CAUSAL)


def test_orient_pair_context_and_fallback():
    context = create_concept("ctx", concept_type=ConceptType.CONTEXT)
    consequence = create_concept("c", concept_type=ConceptType.CONSEQUENCE)
    other = create_concept("o", concept_type=ConceptType.CONSEQUENCE)

    assert orient_pair(context, consequence)[2] == RelationType.CONTEXTUAL
    assert orient_pair(consequence, other)[2] == RelationType.CORRELATIONAL


def test_evidence_overlap_fraction():
    first = ["staff leave early", "meetings run late"]
    second = ["staff leave early today"]

    assert evidence_overlap(first, second) == pytest.approx(0.5)
    assert evidence_overlap([], second) == 0.0


def test_overall_similarity_weights():
    a = create_concept("a", "remote work problem", description="teams feel isolated")
    b = create_concept("b", "remote work problem", description="teams feel isolated")

    assert overall_similarity(a, b) == pytest.approx(0.8)


def test_pairwise_relation_for_similar_labels():
    a = create_concept("a", "remote work problem")
    b = create_concept("b", "remote work problem")

    relations = RelationDiscoverer().pairwise_relations([a, b], threshold=0.4)

    assert len(relations) == 1
    relation = relations[0]
    assert relation.id == "relation_a_b"
    assert relation.relation_type == RelationType.CORRELATIONAL
    assert relation.bidirectional is True
    assert relation.strength == pytest.approx(0.4)
    assert relation.evidence[0] == "Shared keywords: remote, work, problem"
    assert relation.evidence[-1] == "Category pair: Phenomenon <-> Phenomenon"


def test_pairwise_relation_below_threshold_is_skipped():
    a = create_concept("a", "remote work problem")
    b = create_concept("b", "remote work problem")

    assert RelationDiscoverer().pairwise_relations([a, b], threshold=0.41) == []


def test_directed_pairwise_relation_is_not_bidirectional():
    consequence = create_concept(
        "c", "burnout results", ConceptType.CONSEQUENCE, description="burnout among staff"
    )
    phenomenon = create_concept(
        "p", "burnout problem", ConceptType.PHENOMENON, description="burnout among staff"
    )

    relations = RelationDiscoverer().pairwise_relations([consequence, phenomenon], threshold=0.4)

    assert len(relations) == 1
    assert relations[0].id == "relation_p_c"
    assert relations[0].relation_type == RelationType.CAUSAL
    assert relations[0].bidirectional is False
    assert "Description similarity: 100%" in relations[0].evidence


def test_category_relations_seeded_strength_range():
    concepts = [create_concept(f"p{i}", f"topic {i}") for i in range(4)]
    settings = AxialCodingSettings(relation_threshold=0.0)

    relations = RelationDiscoverer().category_relations(concepts, settings, random.Random(7))

    assert len(relations) == 6
    assert all(0.6 <= r.strength < 0.8 for r in relations)
    assert all(r.bidirectional and r.relation_type == RelationType.CORRELATIONAL for r in relations)


def test_category_relations_reproducible_with_seed():
    concepts = [create_concept(f"p{i}", f"topic {i}") for i in range(3)]

    first = _discover(concepts, random_seed=42)
    second = _discover(concepts, random_seed=42)

    assert [r.strength for r in first] == [r.strength for r in second]


def test_category_relations_deterministic_midpoint():
    concepts = [create_concept("p1", "alpha"), create_concept("p2", "beta")]

    relations = _discover(concepts, deterministic_category_strength=True)

    assert [(r.id, r.strength) for r in relations] == [("category_relation_p1_p2", 0.7)]


def test_category_relations_respect_threshold():
    concepts = [create_concept("p1", "alpha"), create_concept("p2", "beta")]

    assert _discover(concepts, deterministic_category_strength=True, relation_threshold=0.75) == []


def test_causal_pattern_relations_may_exceed_one():
    cause = create_concept("cause", "long hours", ConceptType.CAUSAL_CONDITION)
    phenomenon = create_concept("phen", "long hours", ConceptType.PHENOMENON)

    relations = RelationDiscoverer().causal_pattern_relations([cause, phenomenon], threshold=0.4)

    assert len(relations) == 1
    assert relations[0].id == "causal_cause_phen"
    assert relations[0].strength == pytest.approx(1.3)
    assert relations[0].evidence == ["Causal pattern: long hours -> long hours"]


def test_consequence_pattern_relation():
    phenomenon = create_concept("phen", "burnout problem", ConceptType.PHENOMENON)
    consequence = create_concept("cons", "burnout results", ConceptType.CONSEQUENCE)

    relations = RelationDiscoverer().causal_pattern_relations([phenomenon, consequence], threshold=0.4)

    assert [r.id for r in relations] == ["consequence_phen_cons"]
    assert relations[0].strength == pytest.approx(1 / 3 + 0.3)


def test_causal_pattern_requires_similarity_above_floor():
    cause = create_concept("cause", "overtime", ConceptType.CAUSAL_CONDITION)
    phenomenon = create_concept("phen", "burnout", ConceptType.PHENOMENON)

    assert RelationDiscoverer().causal_pattern_relations([cause, phenomenon], threshold=0.0) == []


def test_discover_relations_combines_detectors():
    phenomenon = create_concept(
        "p", "burnout problem", ConceptType.PHENOMENON, description="burnout among staff"
    )
    consequence = create_concept(
        "c", "burnout results", ConceptType.CONSEQUENCE, description="burnout among staff"
    )

    relations = _discover([phenomenon, consequence])

    assert sorted(r.id for r in relations) == ["consequence_p_c", "relation_p_c"]


def test_relation_invariants_hold_on_mixed_concepts():
    concepts = [
        create_concept("p1", "staffing problem", ConceptType.PHENOMENON, evidence=["we lack staff"]),
        create_concept("p2", "staffing problem", ConceptType.PHENOMENON, evidence=["we lack staff now"]),
        create_concept("c1", "staffing cause", ConceptType.CAUSAL_CONDITION, evidence=["budget cut"]),
        create_concept("r1", "staffing results", ConceptType.CONSEQUENCE),
        create_concept("x1", "office environment", ConceptType.CONTEXT),
    ]

    relations = _discover(concepts, random_seed=1)

    assert relations
    assert_relation_strength_bounds(relations)
    assert_no_self_relations(relations)
    pairwise = [r for r in relations if r.id.startswith("relation_")]
    assert all(0.0 <= r.strength <= 1.0 for r in pairwise)
