"""Assembles the six-role paradigm model and picks the central phenomenon."""

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from gta_python_backend.schemas import (
    ConceptCategory,
    ConceptItem,
    ConceptRelation,
    ConceptType,
    ParadigmModel,
)
from gta_python_backend.services.concept_categorizer import category_display_name

logger = logging.getLogger(__name__)

PLACEHOLDER_PHENOMENON = "Central phenomenon (under identification)"

# Bucket caps; the phenomenon itself is a single label.
PARADIGM_CAPS: Dict[ConceptType, int] = {
    ConceptType.CAUSAL_CONDITION: 5,
    ConceptType.CONTEXT: 3,
    ConceptType.INTERVENING_CONDITION: 3,
    ConceptType.ACTION_STRATEGY: 5,
    ConceptType.CONSEQUENCE: 5,
}


def ranked_labels(concepts: Sequence[ConceptItem], concept_type: ConceptType) -> List[str]:
    """Distinct labels of one type, most relevant first."""
    members = [c for c in concepts if c.category.type == concept_type]
    labels: List[str] = []
    for concept in sorted(members, key=lambda c: c.relevance, reverse=True):
        if concept.concept not in labels:
            labels.append(concept.concept)
    return labels


def refine_categories(concepts: Sequence[ConceptItem]) -> List[ConceptCategory]:
    """One category per paradigm type present, members in concept order."""
    members: Dict[ConceptType, List[str]] = {}
    for concept in concepts:
        members.setdefault(concept.category.type, []).append(concept.id)

    return [
        ConceptCategory(
            id=f"refined_{concept_type.value}",
            name=category_display_name(concept_type),
            description=f"{len(ids)} related concepts",
            type=concept_type,
            concepts=ids,
        )
        for concept_type, ids in members.items()
    ]


class ParadigmModelBuilder:
    def build(self, concepts: Sequence[ConceptItem], relations: Sequence[ConceptRelation]) -> ParadigmModel:
        def capped(concept_type: ConceptType) -> List[str]:
            return ranked_labels(concepts, concept_type)[: PARADIGM_CAPS[concept_type]]

        model = ParadigmModel(
            phenomenon=self.select_central_phenomenon(concepts, relations),
            causal_conditions=capped(ConceptType.CAUSAL_CONDITION),
            context=capped(ConceptType.CONTEXT),
            intervening_conditions=capped(ConceptType.INTERVENING_CONDITION),
            action_strategies=capped(ConceptType.ACTION_STRATEGY),
            consequences=capped(ConceptType.CONSEQUENCE),
        )
        logger.debug(
            "Paradigm model: phenomenon=%r causal=%s context=%s intervening=%s strategies=%s consequences=%s",
            model.phenomenon,
            len(model.causal_conditions),
            len(model.context),
            len(model.intervening_conditions),
            len(model.action_strategies),
            len(model.consequences),
        )
        return model

    def select_central_phenomenon(
        self,
        concepts: Sequence[ConceptItem],
        relations: Sequence[ConceptRelation],
    ) -> str:
        """
        Label of the phenomenon concept with the highest strength-weighted degree.

        Each relation adds its strength (clamped to 1) to every endpoint that is
        a phenomenon concept; concepts sharing a label pool their degree. With
        no connected phenomenon the most relevant one is used, and with no
        phenomenon concepts at all a placeholder label.
        """
        phenomena = {c.id: c.concept for c in concepts if c.category.type == ConceptType.PHENOMENON}
        if not phenomena:
            return PLACEHOLDER_PHENOMENON

        degree: Dict[str, float] = defaultdict(float)
        for relation in relations:
            weight = min(relation.strength, 1.0)
            for endpoint in (relation.source_concept_id, relation.target_concept_id):
                if endpoint in phenomena:
                    degree[phenomena[endpoint]] += weight

        if degree:
            # Ties keep concept order.
            order = list(dict.fromkeys(phenomena.values()))
            return max(order, key=lambda label: degree.get(label, 0.0))

        return ranked_labels(concepts, ConceptType.PHENOMENON)[0]
