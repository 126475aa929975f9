"""Per-type summary tables logged after each coding phase."""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Sequence, TypeVar

from gta_python_backend.schemas import ConceptItem, ConceptRelation, Hypothesis

T = TypeVar("T")


def _group_by(items: Sequence[T], key: Callable[[T], Any]) -> Dict[str, List[T]]:
    groups: Dict[str, List[T]] = defaultdict(list)
    for item in items:
        value = key(item)
        groups[getattr(value, "value", value)].append(item)
    return dict(groups)


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def analyze_concept_categories(concepts: Sequence[ConceptItem]) -> Dict[str, Dict[str, Any]]:
    """Count, mean relevance, total frequency and share per paradigm type."""
    stats = {}
    for concept_type, members in _group_by(concepts, lambda c: c.category.type).items():
        stats[concept_type] = {
            "count": len(members),
            "avg_relevance": round(sum(c.relevance for c in members) / len(members), 2),
            "total_frequency": sum(c.frequency for c in members),
            "percentage": _percentage(len(members), len(concepts)),
        }
    return stats


def analyze_relation_types(relations: Sequence[ConceptRelation]) -> Dict[str, Dict[str, Any]]:
    stats = {}
    for relation_type, members in _group_by(relations, lambda r: r.relation_type).items():
        stats[relation_type] = {
            "count": len(members),
            "avg_strength": round(sum(r.strength for r in members) / len(members), 2),
            "percentage": _percentage(len(members), len(relations)),
        }
    return stats


def analyze_hypothesis_types(hypotheses: Sequence[Hypothesis]) -> Dict[str, Dict[str, Any]]:
    stats = {}
    for hypothesis_type, members in _group_by(hypotheses, lambda h: h.type).items():
        stats[hypothesis_type] = {
            "count": len(members),
            "avg_confidence": round(sum(h.confidence for h in members) / len(members), 2),
            "percentage": _percentage(len(members), len(hypotheses)),
        }
    return stats
