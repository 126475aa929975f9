"""Selective coding: choose the core category the theory is organized around."""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from gta_python_backend.schemas import (
    ConceptCategory,
    ConceptRelation,
    ConceptType,
    CoreCategory,
    ParadigmModel,
)

logger = logging.getLogger(__name__)

CORE_CATEGORY_ID = "core_category_1"
MAX_SUPPORTING_CONCEPTS = 8
BASE_CONFIDENCE = 0.6
CONFIDENCE_PER_RELATION = 0.01
MAX_CONFIDENCE = 0.9

CONTRADICTING_FACTORS = [
    "Changes in the external environment",
    "Fluctuating constraints",
    "Unexpected intervening factors",
]


def bucket_scores(
    categories: Sequence[ConceptCategory],
    relations: Sequence[ConceptRelation],
) -> Dict[ConceptType, float]:
    """Sum of relation strength touching each paradigm bucket, via category membership."""
    bucket_of: Dict[str, ConceptType] = {}
    for category in categories:
        for concept_id in category.concepts:
            bucket_of.setdefault(concept_id, category.type)

    scores: Dict[ConceptType, float] = defaultdict(float)
    for relation in relations:
        touched = {
            bucket_of[endpoint]
            for endpoint in (relation.source_concept_id, relation.target_concept_id)
            if endpoint in bucket_of
        }
        for bucket in touched:
            scores[bucket] += relation.strength
    return dict(scores)


def core_confidence(relation_count: int) -> float:
    return min(MAX_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_RELATION * relation_count)


class CoreCategorySelector:
    def select(
        self,
        categories: Sequence[ConceptCategory],
        relations: Sequence[ConceptRelation],
        paradigm: ParadigmModel,
    ) -> CoreCategory:
        scores = bucket_scores(categories, relations)
        top_bucket: Optional[ConceptType] = max(scores, key=scores.get) if scores else None

        supporting: List[str] = []
        for category in categories:
            for concept_id in category.concepts:
                if len(supporting) >= MAX_SUPPORTING_CONCEPTS:
                    break
                if concept_id not in supporting:
                    supporting.append(concept_id)

        if top_bucket is not None:
            description = (
                f"Integrative category with the densest relations "
                f"({top_bucket.value}, total strength {scores[top_bucket]:.2f})"
            )
        else:
            description = "Integrative category; no relations connect the coded concepts yet"

        core = CoreCategory(
            id=CORE_CATEGORY_ID,
            name=paradigm.phenomenon,
            description=description,
            supporting_concepts=supporting,
            contradicting_factors=list(CONTRADICTING_FACTORS),
            confidence=core_confidence(len(relations)),
            central_phenomenon=paradigm.phenomenon,
        )
        logger.debug(
            "Core category %r: top bucket=%s confidence=%.2f supporting=%s",
            core.name,
            top_bucket.value if top_bucket else None,
            core.confidence,
            len(supporting),
        )
        return core
