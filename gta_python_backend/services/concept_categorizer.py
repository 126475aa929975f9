"""
Paradigm-role classification for extracted concepts.

Maps a concept's label and description onto one of the six paradigm types:
- phenomenon: the central problem or pattern being studied
- causal_condition: what brings the phenomenon about
- context: the setting in which it unfolds
- action_strategy: how participants respond to it
- consequence: what those responses lead to
- intervening_condition: factors that dampen or amplify the response

Rules are evaluated in order and the first match wins, so the table can be
reordered, localized or extended without touching the matching code.
"""

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from gta_python_backend.schemas import ConceptCategory, ConceptItem, ConceptType

CATEGORY_RULES: List[Tuple[ConceptType, Tuple[str, ...]]] = [
    (
        ConceptType.PHENOMENON,
        ("problem", "issue", "trend", "phenomenon", "challenge",
         "問題", "課題", "現象", "状況", "状態", "傾向", "パターン"),
    ),
    (
        ConceptType.CAUSAL_CONDITION,
        ("cause", "reason", "trigger", "driver", "origin",
         "原因", "理由", "要因", "きっかけ", "契機"),
    ),
    (
        ConceptType.CONTEXT,
        ("environment", "condition", "background", "setting", "circumstance",
         "環境", "条件", "文脈", "背景", "前提"),
    ),
    (
        ConceptType.ACTION_STRATEGY,
        ("solution", "strategy", "approach", "countermeasure", "tactic",
         "対策", "解決", "改善", "戦略", "方法", "手段", "アプローチ"),
    ),
    (
        ConceptType.CONSEQUENCE,
        ("result", "effect", "impact", "outcome", "consequence",
         "結果", "効果", "影響", "変化", "成果", "帰結"),
    ),
    (
        ConceptType.INTERVENING_CONDITION,
        ("constraint", "barrier", "obstacle", "mediator", "moderator",
         "制約", "障害", "阻害", "介入", "支援"),
    ),
]

CATEGORY_DISPLAY_NAMES: Dict[ConceptType, str] = {
    ConceptType.PHENOMENON: "Phenomenon",
    ConceptType.CAUSAL_CONDITION: "Causal conditions",
    ConceptType.CONTEXT: "Context",
    ConceptType.INTERVENING_CONDITION: "Intervening conditions",
    ConceptType.ACTION_STRATEGY: "Action strategies",
    ConceptType.CONSEQUENCE: "Consequences",
}


def category_display_name(concept_type: ConceptType) -> str:
    return CATEGORY_DISPLAY_NAMES.get(concept_type, "Unclassified")


def category_for_type(concept_type: ConceptType) -> ConceptCategory:
    """Classification label attached to a single concept."""
    return ConceptCategory(
        id=f"category_{concept_type.value}",
        name=category_display_name(concept_type),
        description=f"Concepts classified as {concept_type.value.replace('_', ' ')}",
        type=concept_type,
    )


def _compile_keyword(keyword: str) -> Pattern:
    # Latin keywords match at a word start so "cause" does not fire on "because".
    if keyword.isascii():
        return re.compile(r"\b" + re.escape(keyword), re.IGNORECASE)
    return re.compile(re.escape(keyword))


class ConceptCategorizer:
    """Ordered keyword-rule classifier over concept label and description text."""

    def __init__(self, rules: Sequence[Tuple[ConceptType, Sequence[str]]] = CATEGORY_RULES):
        self._rules = [
            (concept_type, [_compile_keyword(keyword) for keyword in keywords])
            for concept_type, keywords in rules
        ]

    def classify(self, label: str, description: str = "") -> Optional[ConceptType]:
        """
        Return the first rule type whose keyword appears in the label, then in
        the description, or None when neither matches.
        """
        for text in (label, description):
            if not text:
                continue
            for concept_type, patterns in self._rules:
                if any(pattern.search(text) for pattern in patterns):
                    return concept_type
        return None

    def categorize(self, concept: ConceptItem) -> ConceptItem:
        """
        Assign a paradigm type to one concept.

        A rule match wins. Without one the concept keeps the type it was built
        with (an AI-supplied type, otherwise phenomenon).
        """
        concept_type = self.classify(concept.concept, concept.description) or concept.category.type
        return concept.model_copy(update={"category": category_for_type(concept_type)})

    def categorize_all(self, concepts: Sequence[ConceptItem]) -> List[ConceptItem]:
        return [self.categorize(concept) for concept in concepts]
