"""
Theory Invariant Assertions for the Grounded-Theory Backend

Reusable assertion utilities for validating the structures the coding phases
produce. Use them in component and pipeline tests to keep data integrity
checks in one place.

Usage:
    from tests.invariants import check_axial_invariants

    def test_full_pipeline():
        axial = await perform_axial_coding(open_results)
        check_axial_invariants(axial)
"""

from typing import Iterable, Sequence

from gta_python_backend.schemas import (
    AxialCodingResult,
    CausalChain,
    ConceptRelation,
    DuplicateHypothesisPair,
    OpenCodingResult,
    SelectiveCodingResult,
)


class InvariantViolation(Exception):
    """Raised when a theory invariant is violated."""

    def __init__(self, invariant_id: str, message: str, context: dict = None):
        self.invariant_id = invariant_id
        self.message = message
        self.context = context or {}
        super().__init__(f"[{invariant_id}] {message}\nContext: {context}")


# ============================================================================
# Open Coding Invariants
# ============================================================================

def assert_unique_concept_ids(result: OpenCodingResult):
    """Deduplication leaves exactly one concept per id."""
    ids = [c.id for c in result.extracted_concepts]
    duplicates = sorted({concept_id for concept_id in ids if ids.count(concept_id) > 1})
    if duplicates:
        raise InvariantViolation(
            "unique-concept-ids",
            f"{len(duplicates)} concept ids appear more than once",
            {"cluster_id": result.cluster_id, "duplicate_ids": duplicates},
        )


def assert_relevance_bounds(result: OpenCodingResult):
    out_of_range = [c.id for c in result.extracted_concepts if not 0.0 <= c.relevance <= 1.0]
    if out_of_range:
        raise InvariantViolation(
            "relevance-bounds",
            "Concept relevance outside [0, 1]",
            {"cluster_id": result.cluster_id, "concept_ids": out_of_range},
        )


# ============================================================================
# Axial Coding Invariants
# ============================================================================

def assert_relation_strength_bounds(relations: Iterable[ConceptRelation]):
    """
    Similarity-based relations carry a probability-like strength.

    Only causal-pattern relations (ids ``causal_*`` / ``consequence_*``) may
    exceed 1.
    """
    for relation in relations:
        uncapped = relation.id.startswith(("causal_", "consequence_"))
        if relation.strength < 0 or (not uncapped and relation.strength > 1.0):
            raise InvariantViolation(
                "relation-strength-bounds",
                f"Relation {relation.id} has strength {relation.strength}",
                {"relation_type": relation.relation_type.value},
            )


def assert_no_self_relations(relations: Iterable[ConceptRelation]):
    for relation in relations:
        if relation.source_concept_id == relation.target_concept_id:
            raise InvariantViolation(
                "no-self-relations",
                f"Relation {relation.id} links {relation.source_concept_id} to itself",
            )


def assert_chains_acyclic(chains: Sequence[CausalChain]):
    """No chain visits the same concept twice."""
    for chain in chains:
        if len(set(chain.concept_sequence)) != len(chain.concept_sequence):
            raise InvariantViolation(
                "chain-acyclic",
                f"Chain {chain.id} repeats a concept",
                {"concept_sequence": chain.concept_sequence},
            )


def assert_relations_reference_concepts(axial: AxialCodingResult):
    known = {c.id for c in axial.concepts}
    dangling = [
        r.id for r in axial.relations
        if r.source_concept_id not in known or r.target_concept_id not in known
    ]
    if dangling:
        raise InvariantViolation(
            "no-dangling-relations",
            f"{len(dangling)} relations reference unknown concepts",
            {"relation_ids": dangling[:10]},
        )


# ============================================================================
# Selective Coding Invariants
# ============================================================================

def assert_duplicate_pairs_distinct(pairs: Sequence[DuplicateHypothesisPair]):
    for pair in pairs:
        if pair.first_hypothesis_id == pair.second_hypothesis_id:
            raise InvariantViolation(
                "duplicate-pairs-distinct",
                f"Hypothesis {pair.first_hypothesis_id} flagged as a duplicate of itself",
            )


def assert_integration_bounds(selective: SelectiveCodingResult):
    scores = selective.integration
    for name in ("coherence", "density", "variation"):
        value = getattr(scores, name)
        if not 0.0 <= value <= 1.0:
            raise InvariantViolation("integration-bounds", f"{name} is {value}")


# ============================================================================
# Composite Invariant Checkers
# ============================================================================

def check_open_coding_invariants(results: Sequence[OpenCodingResult]):
    for result in results:
        assert_unique_concept_ids(result)
        assert_relevance_bounds(result)


def check_axial_invariants(axial: AxialCodingResult):
    assert_relation_strength_bounds(axial.relations)
    assert_no_self_relations(axial.relations)
    assert_chains_acyclic(axial.causal_chains)
    assert_relations_reference_concepts(axial)


def check_selective_invariants(selective: SelectiveCodingResult):
    assert_duplicate_pairs_distinct(selective.duplicate_hypotheses)
    assert_integration_bounds(selective)
    if not selective.hypotheses:
        raise InvariantViolation("descriptive-hypothesis", "No hypotheses generated")
