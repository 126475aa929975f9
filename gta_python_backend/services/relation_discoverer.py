"""
Axial coding: relation discovery between concepts.

Three detectors contribute relations:
- pairwise similarity over labels, descriptions and evidence (typed by the
  pair's paradigm roles)
- same-category links, which keep the network connected when wording differs
- causal patterns between causal conditions, phenomena and consequences

Pairwise discovery compares every unordered concept pair, and evidence
overlap compares every evidence pair within it, so cost grows as
O(n^2 * e^2) for n concepts with e evidence snippets each. That is fine for
the tens of concepts a run produces; callers batching many clusters into one
run should keep that in mind.
"""

import logging
import random
from collections import defaultdict
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from gta_python_backend.schemas import (
    AxialCodingSettings,
    ConceptItem,
    ConceptRelation,
    ConceptType,
    RelationType,
)
from gta_python_backend.services.text_normalizer import common_keywords, jaccard_similarity

logger = logging.getLogger(__name__)

LEXICAL_WEIGHT = 0.4
DESCRIPTION_WEIGHT = 0.4
EVIDENCE_WEIGHT = 0.2
EVIDENCE_PAIR_SIMILARITY = 0.3
DESCRIPTION_NOTE_SIMILARITY = 0.3
CAUSAL_PATTERN_SIMILARITY = 0.2
CAUSAL_PATTERN_BONUS = 0.3
CATEGORY_STRENGTH_MIN = 0.6
CATEGORY_STRENGTH_SPAN = 0.2
CATEGORY_STRENGTH_MIDPOINT = 0.7

# Directed (source type, target type) combinations and the relation they imply.
RELATION_TYPE_RULES: List[Tuple[FrozenSet[Tuple[ConceptType, ConceptType]], RelationType]] = [
    (
        frozenset({
            (ConceptType.CAUSAL_CONDITION, ConceptType.PHENOMENON),
            (ConceptType.PHENOMENON, ConceptType.CONSEQUENCE),
        }),
        RelationType.CAUSAL,
    ),
    (
        frozenset({
            (ConceptType.CONTEXT, ConceptType.ACTION_STRATEGY),
            (ConceptType.INTERVENING_CONDITION, ConceptType.PHENOMENON),
        }),
        RelationType.CONDITIONAL,
    ),
    (
        frozenset({
            (ConceptType.ACTION_STRATEGY, ConceptType.CONSEQUENCE),
            (ConceptType.CAUSAL_CONDITION, ConceptType.ACTION_STRATEGY),
        }),
        RelationType.SEQUENTIAL,
    ),
]


def lexical_similarity(concept_a: ConceptItem, concept_b: ConceptItem) -> float:
    return jaccard_similarity(concept_a.concept, concept_b.concept)


def evidence_overlap(evidence_a: Sequence[str], evidence_b: Sequence[str]) -> float:
    """Fraction of cross-product evidence pairs whose lexical similarity exceeds 0.3."""
    if not evidence_a or not evidence_b:
        return 0.0
    overlapping = sum(
        1
        for first in evidence_a
        for second in evidence_b
        if jaccard_similarity(first, second) > EVIDENCE_PAIR_SIMILARITY
    )
    return overlapping / (len(evidence_a) * len(evidence_b))


def overall_similarity(concept_a: ConceptItem, concept_b: ConceptItem) -> float:
    return (
        LEXICAL_WEIGHT * lexical_similarity(concept_a, concept_b)
        + DESCRIPTION_WEIGHT * jaccard_similarity(concept_a.description, concept_b.description)
        + EVIDENCE_WEIGHT * evidence_overlap(concept_a.evidence, concept_b.evidence)
    )


def infer_relation_type(source_type: ConceptType, target_type: ConceptType) -> Optional[RelationType]:
    """Relation type for a directed pair of paradigm roles, or None if no directed rule applies."""
    for pairs, relation_type in RELATION_TYPE_RULES:
        if (source_type, target_type) in pairs:
            return relation_type
    return None


def orient_pair(concept_a: ConceptItem, concept_b: ConceptItem) -> Tuple[ConceptItem, ConceptItem, RelationType]:
    """
    Pick the relation direction and type for an unordered pair.

    Directed rules are checked both ways so a consequence listed before its
    phenomenon still yields phenomenon -> consequence. Pairs touching context
    are contextual and everything else is correlational.
    """
    type_a, type_b = concept_a.category.type, concept_b.category.type
    forward = infer_relation_type(type_a, type_b)
    if forward is not None:
        return concept_a, concept_b, forward
    backward = infer_relation_type(type_b, type_a)
    if backward is not None:
        return concept_b, concept_a, backward
    if ConceptType.CONTEXT in (type_a, type_b):
        return concept_a, concept_b, RelationType.CONTEXTUAL
    return concept_a, concept_b, RelationType.CORRELATIONAL


def relation_evidence(source: ConceptItem, target: ConceptItem) -> List[str]:
    evidence = []
    shared = common_keywords(source.concept, target.concept)
    if shared:
        evidence.append(f"Shared keywords: {', '.join(shared)}")
    description_similarity = jaccard_similarity(source.description, target.description)
    if description_similarity > DESCRIPTION_NOTE_SIMILARITY:
        evidence.append(f"Description similarity: {round(description_similarity * 100)}%")
    evidence.append(f"Category pair: {source.category.name} <-> {target.category.name}")
    return evidence


def group_by_type(concepts: Sequence[ConceptItem]) -> Dict[ConceptType, List[ConceptItem]]:
    groups: Dict[ConceptType, List[ConceptItem]] = defaultdict(list)
    for concept in concepts:
        groups[concept.category.type].append(concept)
    return dict(groups)


class RelationDiscoverer:
    """Finds typed relations between the concepts of one axial-coding run."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng

    def discover_relations(
        self,
        concepts: Sequence[ConceptItem],
        settings: AxialCodingSettings,
    ) -> List[ConceptRelation]:
        threshold = settings.relation_threshold
        rng = self._rng or random.Random(settings.random_seed)

        pairwise = self.pairwise_relations(concepts, threshold)
        by_category = self.category_relations(concepts, settings, rng)
        causal = self.causal_pattern_relations(concepts, threshold)

        logger.debug(
            "Relations discovered: pairwise=%s category=%s causal_pattern=%s",
            len(pairwise),
            len(by_category),
            len(causal),
        )
        return pairwise + by_category + causal

    def pairwise_relations(self, concepts: Sequence[ConceptItem], threshold: float) -> List[ConceptRelation]:
        relations = []
        for i, concept_a in enumerate(concepts):
            for concept_b in concepts[i + 1:]:
                if concept_a.id == concept_b.id:
                    continue
                similarity = overall_similarity(concept_a, concept_b)
                if similarity < threshold:
                    continue
                source, target, relation_type = orient_pair(concept_a, concept_b)
                relations.append(
                    ConceptRelation(
                        id=f"relation_{source.id}_{target.id}",
                        source_concept_id=source.id,
                        target_concept_id=target.id,
                        relation_type=relation_type,
                        strength=min(similarity, 1.0),
                        evidence=relation_evidence(source, target),
                        bidirectional=relation_type == RelationType.CORRELATIONAL,
                    )
                )
        return relations

    def category_relations(
        self,
        concepts: Sequence[ConceptItem],
        settings: AxialCodingSettings,
        rng: random.Random,
    ) -> List[ConceptRelation]:
        """Bidirectional correlational links between every pair sharing a paradigm type."""
        relations = []
        for members in group_by_type(concepts).values():
            for i, first in enumerate(members):
                for second in members[i + 1:]:
                    if settings.deterministic_category_strength:
                        strength = CATEGORY_STRENGTH_MIDPOINT
                    else:
                        strength = CATEGORY_STRENGTH_MIN + rng.random() * CATEGORY_STRENGTH_SPAN
                    if strength < settings.relation_threshold or first.id == second.id:
                        continue
                    relations.append(
                        ConceptRelation(
                            id=f"category_relation_{first.id}_{second.id}",
                            source_concept_id=first.id,
                            target_concept_id=second.id,
                            relation_type=RelationType.CORRELATIONAL,
                            strength=strength,
                            evidence=[f"Same category: {first.category.name}"],
                            bidirectional=True,
                        )
                    )
        return relations

    def causal_pattern_relations(self, concepts: Sequence[ConceptItem], threshold: float) -> List[ConceptRelation]:
        """
        Directed causal links cause -> phenomenon and phenomenon -> consequence
        for lexically similar labels. Strength is similarity + 0.3 and is not
        capped at 1.
        """
        groups = group_by_type(concepts)
        causes = groups.get(ConceptType.CAUSAL_CONDITION, [])
        phenomena = groups.get(ConceptType.PHENOMENON, [])
        consequences = groups.get(ConceptType.CONSEQUENCE, [])

        relations = []
        patterns = [
            ("causal", "Causal pattern", causes, phenomena),
            ("consequence", "Consequence pattern", phenomena, consequences),
        ]
        for prefix, label, sources, targets in patterns:
            for source in sources:
                for target in targets:
                    similarity = lexical_similarity(source, target)
                    strength = similarity + CAUSAL_PATTERN_BONUS
                    if similarity <= CAUSAL_PATTERN_SIMILARITY or strength < threshold:
                        continue
                    relations.append(
                        ConceptRelation(
                            id=f"{prefix}_{source.id}_{target.id}",
                            source_concept_id=source.id,
                            target_concept_id=target.id,
                            relation_type=RelationType.CAUSAL,
                            strength=strength,
                            evidence=[f"{label}: {source.concept} -> {target.concept}"],
                            bidirectional=False,
                        )
                    )
        return relations
