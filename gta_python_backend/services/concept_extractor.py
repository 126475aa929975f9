"""
Open coding: per-cluster concept extraction.

Each cluster's documents are joined and normalized, then two independent
strategies produce concept candidates:

1. External AI extraction through a ``ConceptExtractionPort`` (optional,
   time-limited, any failure counts as zero concepts).
2. Statistical extraction: frequency analysis over filtered word tokens.

Candidates are merged, filtered by relevance (with an emergency relaxed
threshold when nothing survives), deduplicated by id and categorized into
paradigm roles. Clusters are processed concurrently under a semaphore and
one cluster failing never aborts the batch.
"""

import asyncio
import logging
import re
import time
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gta_python_backend import config as app_config
from gta_python_backend.schemas import (
    Cluster,
    ConceptExtractionRequest,
    ConceptItem,
    ConceptType,
    OpenCodingResult,
    OpenCodingSettings,
)
from gta_python_backend.services.analysis_statistics import analyze_concept_categories
from gta_python_backend.services.concept_categorizer import ConceptCategorizer, category_for_type
from gta_python_backend.services.concept_extraction_client import ConceptExtractionPort
from gta_python_backend.services.errors import raise_if_cancelled
from gta_python_backend.services.text_normalizer import (
    TextNormalizer,
    is_semantically_meaningful,
    is_structural_label,
    split_sentences,
    word_tokens,
)

logger = logging.getLogger(__name__)

MIN_STATISTICAL_FREQUENCY = 2
MAX_STATISTICAL_CONCEPTS = 15
FREQUENCY_RELEVANCE_BONUS = 1.2
EMERGENCY_THRESHOLD_FACTOR = 0.5
EMERGENCY_THRESHOLD_FLOOR = 0.1
EMERGENCY_CONCEPT_CAP = 10
DOMINANT_THEME_COUNT = 5
CONFIDENCE_BONUS = 1.2
MAX_EVIDENCE_SNIPPETS = 3
MAX_SNIPPET_CHARS = 240
LOW_CONCEPT_COUNT = 3

_SLUG_PATTERN = re.compile(r"[^\w]+")


# ============================================================================
# Candidate refinement
# ============================================================================

def find_duplicate_concept_ids(concepts: Sequence[ConceptItem]) -> List[str]:
    counts = Counter(concept.id for concept in concepts)
    return [concept_id for concept_id, count in counts.items() if count > 1]


def deduplicate_concepts(concepts: Sequence[ConceptItem]) -> List[ConceptItem]:
    """Keep the highest-relevance instance per id, in first-seen order."""
    by_id: Dict[str, ConceptItem] = {}
    for concept in concepts:
        existing = by_id.get(concept.id)
        if existing is None or concept.relevance > existing.relevance:
            by_id[concept.id] = concept
    return list(by_id.values())


def refine_concepts(candidates: Sequence[ConceptItem], threshold: float) -> Tuple[List[ConceptItem], bool]:
    """
    Drop candidates below ``threshold`` and deduplicate.

    When nothing survives, retry against the full candidate list with the
    relaxed threshold ``max(0.1, threshold * 0.5)`` capped at 10 concepts, and
    if even that is empty keep the single most relevant candidate.

    Raising ``threshold`` never increases the result while some candidate
    still meets it. Once the fallback fires the relaxed set may be larger
    than what a lower threshold kept.

    Returns:
        (concepts, used_emergency_fallback)
    """
    refined = deduplicate_concepts([c for c in candidates if c.relevance >= threshold])
    if refined or not candidates:
        return refined, False

    emergency_threshold = max(EMERGENCY_THRESHOLD_FLOOR, threshold * EMERGENCY_THRESHOLD_FACTOR)
    ranked = sorted(candidates, key=lambda c: c.relevance, reverse=True)
    relaxed = [c for c in ranked if c.relevance >= emergency_threshold][:EMERGENCY_CONCEPT_CAP]
    if not relaxed:
        relaxed = ranked[:1]
    logger.warning(
        "No concepts met threshold %.2f; emergency threshold %.2f kept %s of %s candidates",
        threshold,
        emergency_threshold,
        len(relaxed),
        len(candidates),
    )
    return deduplicate_concepts(relaxed), True


def dominant_themes(concepts: Sequence[ConceptItem], limit: int = DOMINANT_THEME_COUNT) -> List[str]:
    ranked = sorted(concepts, key=lambda c: c.relevance, reverse=True)
    return [concept.concept for concept in ranked[:limit]]


def code_frequency(concepts: Sequence[ConceptItem]) -> Dict[str, int]:
    return {concept.concept: concept.frequency for concept in concepts}


def confidence_score(concepts: Sequence[ConceptItem]) -> float:
    if not concepts:
        return 0.0
    mean_relevance = sum(c.relevance for c in concepts) / len(concepts)
    return min(mean_relevance * CONFIDENCE_BONUS, 1.0)


def evidence_snippets(normalized_text: str, term: str, limit: int = MAX_EVIDENCE_SNIPPETS) -> List[str]:
    """Sentences of the normalized text that mention ``term`` as a token."""
    needle = term.lower()
    snippets = []
    for sentence in split_sentences(normalized_text):
        if needle in word_tokens(sentence) or (" " in needle and needle in sentence.lower()):
            snippets.append(sentence[:MAX_SNIPPET_CHARS])
            if len(snippets) >= limit:
                break
    return snippets


# ============================================================================
# Strategies
# ============================================================================

def statistical_concepts(
    normalized_text: str,
    cluster_id: str,
    normalizer: Optional[TextNormalizer] = None,
) -> List[ConceptItem]:
    """
    Frequency-ranked concept candidates.

    Tokens must pass the validity filters, occur at least twice and not be a
    pronoun, interjection or structural label. The top 15 by frequency become
    concepts with relevance ``min(freq / max_freq * 1.2, 1)``.
    """
    normalizer = normalizer or TextNormalizer()
    tokens = normalizer.candidate_tokens(normalized_text)
    if not tokens:
        return []

    frequency = Counter(tokens)
    max_freq = max(frequency.values())
    frequent = [(term, count) for term, count in frequency.items() if count >= MIN_STATISTICAL_FREQUENCY]
    meaningful = [(term, count) for term, count in frequent if is_semantically_meaningful(term)]
    kept = [(term, count) for term, count in meaningful if not is_structural_label(term)]

    rejected = len(frequent) - len(kept)
    logger.debug(
        "Statistical extraction: %s tokens, %s unique, %s frequent, %s rejected by vocabulary filters",
        len(tokens),
        len(frequency),
        len(frequent),
        rejected,
    )

    # sorted() is stable, so equal counts keep first-occurrence order
    ranked = sorted(kept, key=lambda pair: pair[1], reverse=True)[:MAX_STATISTICAL_CONCEPTS]
    concepts = []
    for index, (term, count) in enumerate(ranked):
        concepts.append(
            ConceptItem(
                id=f"{cluster_id}:stat_{index}",
                concept=term,
                description=f"{term} ({count} mentions)",
                evidence=evidence_snippets(normalized_text, term),
                frequency=count,
                relevance=min(count / max_freq * FREQUENCY_RELEVANCE_BONUS, 1.0),
                category=category_for_type(ConceptType.PHENOMENON),
                cluster_id=cluster_id,
            )
        )
    return concepts


def _concept_type_hint(raw_category: Any) -> ConceptType:
    raw_type = raw_category.get("type") if isinstance(raw_category, dict) else raw_category
    try:
        return ConceptType(str(raw_type))
    except ValueError:
        return ConceptType.PHENOMENON


def parse_ai_concepts(payload: Any, cluster_id: str, normalized_text: str) -> List[ConceptItem]:
    """
    Convert an extraction response into concept candidates.

    Anything other than ``{"success": true, "concepts": [...]}`` yields no
    concepts; individual malformed items are skipped.
    """
    if not isinstance(payload, dict) or payload.get("success") is not True:
        return []
    items = payload.get("concepts")
    if not isinstance(items, list):
        return []

    concepts = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        label = str(item.get("concept") or "").strip()
        if not label:
            continue
        try:
            relevance = float(item.get("relevance", 0.0))
        except (TypeError, ValueError):
            continue
        if relevance != relevance:  # NaN
            continue
        relevance = min(max(relevance, 0.0), 1.0)

        try:
            frequency = max(int(item.get("frequency", 1)), 0)
        except (TypeError, ValueError):
            frequency = 1

        raw_evidence = item.get("evidence")
        if isinstance(raw_evidence, list) and raw_evidence:
            evidence = [str(entry) for entry in raw_evidence if entry]
        else:
            evidence = evidence_snippets(normalized_text, label)

        slug = _SLUG_PATTERN.sub("_", label.lower()).strip("_") or str(index)
        concepts.append(
            ConceptItem(
                id=f"{cluster_id}:ai_{slug}",
                concept=label,
                description=str(item.get("description") or ""),
                evidence=evidence,
                frequency=frequency,
                relevance=relevance,
                category=category_for_type(_concept_type_hint(item.get("category"))),
                cluster_id=cluster_id,
            )
        )
    return concepts


# ============================================================================
# Extractor
# ============================================================================

class ConceptExtractor:
    """Runs open coding over a batch of clusters."""

    def __init__(
        self,
        port: Optional[ConceptExtractionPort] = None,
        normalizer: Optional[TextNormalizer] = None,
        categorizer: Optional[ConceptCategorizer] = None,
    ):
        self.port = port
        self.normalizer = normalizer or TextNormalizer()
        self.categorizer = categorizer or ConceptCategorizer()

    async def extract_concepts(
        self,
        clusters: Sequence[Cluster],
        settings: OpenCodingSettings,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[OpenCodingResult]:
        """One OpenCodingResult per cluster, in input order."""
        semaphore = asyncio.Semaphore(settings.max_concurrency)

        async def run_one(cluster: Cluster) -> OpenCodingResult:
            async with semaphore:
                raise_if_cancelled(cancel_event, "open coding")
                try:
                    return await self.extract_cluster(cluster, settings)
                except Exception as exc:
                    logger.exception("Concept extraction failed for cluster %s", cluster.id)
                    return OpenCodingResult(
                        cluster_id=cluster.id,
                        cluster_name=cluster.name,
                        warnings=[f"Concept extraction failed: {exc}"],
                    )

        # Every task settles before the first cancellation is re-raised.
        results = await asyncio.gather(
            *(run_one(cluster) for cluster in clusters), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def extract_cluster(self, cluster: Cluster, settings: OpenCodingSettings) -> OpenCodingResult:
        started = time.perf_counter()
        warnings: List[str] = []

        text = self.normalizer.normalize_documents(cluster.documents)
        if not text:
            message = f"Cluster {cluster.id} has no text content"
            logger.warning(message)
            warnings.append(message)

        ai_concepts: List[ConceptItem] = []
        if settings.use_external_ai and text:
            if self.port is None:
                logger.debug("No concept extraction port configured; statistical extraction only")
            else:
                ai_concepts = await self._extract_with_ai(text, cluster, settings, warnings)

        stat_concepts = statistical_concepts(text, cluster.id, self.normalizer)
        candidates = ai_concepts + stat_concepts

        duplicate_ids = find_duplicate_concept_ids(candidates)
        if duplicate_ids:
            message = f"Duplicate concept ids in cluster {cluster.id}: {', '.join(duplicate_ids)}"
            logger.warning(message)
            warnings.append(message)

        refined, used_fallback = refine_concepts(candidates, settings.threshold)
        if used_fallback:
            warnings.append(
                f"No concepts met threshold {settings.threshold:.2f}; relaxed threshold kept {len(refined)}"
            )
        concepts = self.categorizer.categorize_all(refined)

        if candidates and len(concepts) < LOW_CONCEPT_COUNT:
            message = f"Only {len(concepts)} concept(s) extracted for cluster {cluster.id}"
            logger.warning(message)
            warnings.append(message)

        logger.debug("Cluster %s category stats: %s", cluster.id, analyze_concept_categories(concepts))
        logger.info(
            "Open coding cluster=%s ai=%s statistical=%s kept=%s elapsed_ms=%.1f",
            cluster.id,
            len(ai_concepts),
            len(stat_concepts),
            len(concepts),
            (time.perf_counter() - started) * 1000,
        )

        return OpenCodingResult(
            cluster_id=cluster.id,
            cluster_name=cluster.name,
            extracted_concepts=concepts,
            dominant_themes=dominant_themes(concepts),
            code_frequency=code_frequency(concepts),
            confidence_score=confidence_score(concepts),
            warnings=warnings,
        )

    async def _extract_with_ai(
        self,
        text: str,
        cluster: Cluster,
        settings: OpenCodingSettings,
        warnings: List[str],
    ) -> List[ConceptItem]:
        request = ConceptExtractionRequest(
            text_content=text[: app_config.AI_TEXT_LIMIT],
            cluster_name=cluster.name,
        )
        try:
            payload = await asyncio.wait_for(
                self.port.extract_concepts(request),
                timeout=settings.ai_timeout_seconds,
            )
        except asyncio.TimeoutError:
            message = f"AI concept extraction timed out after {settings.ai_timeout_seconds}s"
            logger.warning("%s (cluster %s)", message, cluster.id)
            warnings.append(message)
            return []
        except Exception as exc:
            message = f"AI concept extraction failed: {exc}"
            logger.warning("%s (cluster %s)", message, cluster.id)
            warnings.append(message)
            return []

        concepts = parse_ai_concepts(payload, cluster.id, text)
        if not concepts and not (isinstance(payload, dict) and payload.get("success") is True):
            message = "AI concept extraction returned an unusable response"
            logger.warning("%s (cluster %s)", message, cluster.id)
            warnings.append(message)
        return concepts
