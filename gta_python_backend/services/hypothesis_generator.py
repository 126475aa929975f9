"""
Hypothesis generation for selective coding.

Each hypothesis kind has an availability condition over the axial result; when
the condition fails the kind is skipped rather than filled with empty text.
The descriptive hypothesis is always produced, so every run yields at least one.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from gta_python_backend.schemas import (
    AxialCodingResult,
    CoreCategory,
    DuplicateHypothesisPair,
    Hypothesis,
    HypothesisType,
)
from gta_python_backend.services.text_normalizer import jaccard_similarity

logger = logging.getLogger(__name__)

STRUCTURAL_RELATION_MINIMUM = 10
DEFAULT_DUPLICATE_SIMILARITY = 0.7


class HypothesisGenerator:
    def generate(self, core_category: CoreCategory, axial: AxialCodingResult) -> List[Hypothesis]:
        paradigm = axial.paradigm_model
        category_count = len(axial.categories)
        relation_count = len(axial.relations)
        chain_count = len(axial.causal_chains)

        hypotheses = [
            Hypothesis(
                id="hypothesis_descriptive_1",
                statement=(
                    f"{paradigm.phenomenon or core_category.name} is a composite phenomenon "
                    f"characterized by multiple interrelated factors"
                ),
                type=HypothesisType.DESCRIPTIVE,
                confidence=0.8,
                supporting_evidence=[
                    f"{category_count} interrelated categories",
                    f"{relation_count} relations identified",
                    "Multiple stakeholders involved",
                ],
                limitations=[
                    "Limited to the observed cases",
                    "Analysed under specific contextual conditions",
                ],
            )
        ]

        if paradigm.causal_conditions or paradigm.consequences:
            cause = paradigm.causal_conditions[0] if paradigm.causal_conditions else "environmental factor change"
            effect = paradigm.consequences[0] if paradigm.consequences else core_category.name
            hypotheses.append(
                Hypothesis(
                    id="hypothesis_explanatory_1",
                    statement=f"Changes in {cause} directly affect the emergence and change of {effect}",
                    type=HypothesisType.EXPLANATORY,
                    confidence=0.7,
                    supporting_evidence=[
                        "Observed causal relation patterns",
                        f"{chain_count} causal chains identified",
                        "Temporal association between conditions and outcomes",
                    ],
                    limitations=["The causal direction needs further verification"],
                )
            )

        if paradigm.action_strategies or paradigm.consequences:
            strategy = paradigm.action_strategies[0] if paradigm.action_strategies else "appropriate intervention"
            outcome = paradigm.consequences[0] if paradigm.consequences else f"improvement of {core_category.name}"
            hypotheses.append(
                Hypothesis(
                    id="hypothesis_predictive_1",
                    statement=f"Carrying out {strategy} is likely to promote {outcome}",
                    type=HypothesisType.PREDICTIVE,
                    confidence=0.6,
                    supporting_evidence=[
                        "Observed strategy-outcome patterns",
                        f"{len(paradigm.action_strategies)} action strategies coded",
                    ],
                    limitations=[
                        "Changes in the external environment are not considered",
                        "Needs verification in individual cases",
                    ],
                )
            )

        if paradigm.context or category_count > 1:
            condition = paradigm.context[0] if paradigm.context else "specific environmental conditions"
            hypotheses.append(
                Hypothesis(
                    id="hypothesis_conditional_1",
                    statement=f"The observed phenomenon pattern appears markedly only under {condition}",
                    type=HypothesisType.EXPLANATORY,
                    confidence=0.65,
                    supporting_evidence=[
                        f"{len(paradigm.context)} contextual conditions coded",
                        f"Differences observed across {category_count} categories",
                    ],
                    limitations=["Needs verification under other contextual conditions"],
                )
            )

        if relation_count > STRUCTURAL_RELATION_MINIMUM:
            hypotheses.append(
                Hypothesis(
                    id="hypothesis_structural_1",
                    statement=(
                        f"The system containing {core_category.name} shows self-organizing "
                        f"and adaptive characteristics"
                    ),
                    type=HypothesisType.EXPLANATORY,
                    confidence=0.75,
                    supporting_evidence=[
                        f"{relation_count} complex interrelations",
                        f"{chain_count} multi-step causal structures",
                    ],
                    limitations=[
                        "The system boundary needs definition",
                        "Needs long-term observation to verify",
                    ],
                )
            )

        logger.debug("Generated %s hypotheses: %s", len(hypotheses), [h.id for h in hypotheses])
        return hypotheses


def find_duplicate_hypotheses(
    hypotheses: Sequence[Hypothesis],
    threshold: float = DEFAULT_DUPLICATE_SIMILARITY,
) -> List[DuplicateHypothesisPair]:
    """Pairs whose statement similarity exceeds ``threshold``; nothing is dropped."""
    duplicates = []
    for i, first in enumerate(hypotheses):
        for second in hypotheses[i + 1:]:
            similarity = jaccard_similarity(first.statement, second.statement)
            if similarity > threshold:
                duplicates.append(
                    DuplicateHypothesisPair(
                        first_hypothesis_id=first.id,
                        second_hypothesis_id=second.id,
                        similarity=similarity,
                    )
                )
    return duplicates


def duplicate_index(pairs: Sequence[DuplicateHypothesisPair]) -> Dict[str, List[Tuple[str, float]]]:
    """Per-hypothesis view of duplicate pairs: id -> [(other id, similarity), ...], both directions."""
    index: Dict[str, List[Tuple[str, float]]] = {}
    for pair in pairs:
        index.setdefault(pair.first_hypothesis_id, []).append((pair.second_hypothesis_id, pair.similarity))
        index.setdefault(pair.second_hypothesis_id, []).append((pair.first_hypothesis_id, pair.similarity))
    return index
