"""Bounded quality scores for an integrated theory."""

from typing import Sequence

from gta_python_backend.schemas import ConceptItem, ConceptRelation, ConceptType, Hypothesis, IntegrationScores

PARADIGM_TYPE_COUNT = len(ConceptType)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class IntegrationEvaluator:
    """
    coherence: mean hypothesis confidence
    density:   r / (r + 1) where r is relations per concept, so it grows with r and stays below 1
    variation: share of the six paradigm types present among the concepts
    """

    def evaluate(
        self,
        concepts: Sequence[ConceptItem],
        relations: Sequence[ConceptRelation],
        hypotheses: Sequence[Hypothesis],
    ) -> IntegrationScores:
        coherence = sum(h.confidence for h in hypotheses) / len(hypotheses) if hypotheses else 0.0

        if concepts:
            ratio = len(relations) / len(concepts)
            density = ratio / (ratio + 1)
        else:
            density = 0.0

        variation = len({c.category.type for c in concepts}) / PARADIGM_TYPE_COUNT

        return IntegrationScores(
            coherence=_clamp(coherence),
            density=_clamp(density),
            variation=_clamp(variation),
        )
