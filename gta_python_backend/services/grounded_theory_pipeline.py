"""
Grounded-theory pipeline: open -> axial -> selective coding.

Phases run strictly in order; within open coding clusters are processed
concurrently. Every call takes an explicit settings object and an optional
``asyncio.Event`` that is checked between clusters and between phases.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from gta_python_backend.schemas import (
    AnalysisExecutionResult,
    AxialCodingResult,
    AxialCodingSettings,
    AxialCodingSummary,
    Cluster,
    ConceptItem,
    DuplicateHypothesisPair,
    GroundedTheoryResultData,
    GroundedTheorySettings,
    Hypothesis,
    OpenCodingResult,
    OpenCodingSettings,
    OpenCodingSummary,
    QualityMetrics,
    SelectiveCodingResult,
    SelectiveCodingSettings,
    SelectiveCodingSummary,
)
from gta_python_backend.services.analysis_statistics import (
    analyze_concept_categories,
    analyze_hypothesis_types,
    analyze_relation_types,
)
from gta_python_backend.services.causal_chain_builder import CausalChainBuilder
from gta_python_backend.services.concept_extraction_client import ConceptExtractionPort
from gta_python_backend.services.concept_extractor import ConceptExtractor, deduplicate_concepts
from gta_python_backend.services.core_category_selector import CoreCategorySelector
from gta_python_backend.services.errors import raise_if_cancelled
from gta_python_backend.services.hypothesis_generator import HypothesisGenerator, find_duplicate_hypotheses
from gta_python_backend.services.integration_evaluator import IntegrationEvaluator
from gta_python_backend.services.paradigm_model_builder import ParadigmModelBuilder, refine_categories
from gta_python_backend.services.relation_discoverer import RelationDiscoverer
from gta_python_backend.services.storyline_composer import StorylineComposer
from gta_python_backend.services.theoretical_model_builder import TheoreticalModelBuilder

logger = logging.getLogger(__name__)

CONCEPT_DIVERSITY_CLUSTERS = 10


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _require(value, name: str) -> None:
    if value is None:
        raise ValueError(f"{name} is required")


async def perform_open_coding(
    clusters: Sequence[Cluster],
    settings: Optional[OpenCodingSettings] = None,
    port: Optional[ConceptExtractionPort] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[OpenCodingResult]:
    """Extract and categorize concepts for each cluster; one result per cluster in input order."""
    _require(clusters, "clusters")
    settings = settings or OpenCodingSettings()
    raise_if_cancelled(cancel_event, "open coding")
    if not clusters:
        return []

    started = time.perf_counter()
    logger.info("Open coding started: clusters=%s threshold=%.2f", len(clusters), settings.threshold)

    results = await ConceptExtractor(port=port).extract_concepts(clusters, settings, cancel_event)

    logger.info(
        "Open coding finished: clusters=%s concepts=%s elapsed_ms=%.1f",
        len(results),
        sum(len(r.extracted_concepts) for r in results),
        _elapsed_ms(started),
    )
    return results


async def perform_axial_coding(
    open_coding_results: Sequence[OpenCodingResult],
    settings: Optional[AxialCodingSettings] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AxialCodingResult:
    """Relate the concepts of all clusters and organize them into a paradigm model."""
    _require(open_coding_results, "open_coding_results")
    settings = settings or AxialCodingSettings()
    raise_if_cancelled(cancel_event, "axial coding")

    started = time.perf_counter()
    concepts: List[ConceptItem] = deduplicate_concepts(
        [concept for result in open_coding_results for concept in result.extracted_concepts]
    )
    logger.info("Axial coding started: concepts=%s", len(concepts))

    relation_started = time.perf_counter()
    relations = RelationDiscoverer().discover_relations(concepts, settings)
    relation_ms = _elapsed_ms(relation_started)

    categories = refine_categories(concepts)
    causal_chains = CausalChainBuilder().build_chains(relations)
    paradigm_model = ParadigmModelBuilder().build(concepts, relations)

    logger.debug("Concept category stats: %s", analyze_concept_categories(concepts))
    logger.debug("Relation type stats: %s", analyze_relation_types(relations))
    logger.info(
        "Axial coding finished: categories=%s relations=%s chains=%s phenomenon=%r "
        "relation_ms=%.1f elapsed_ms=%.1f",
        len(categories),
        len(relations),
        len(causal_chains),
        paradigm_model.phenomenon,
        relation_ms,
        _elapsed_ms(started),
    )
    return AxialCodingResult(
        concepts=concepts,
        categories=categories,
        relations=relations,
        causal_chains=causal_chains,
        paradigm_model=paradigm_model,
    )


async def perform_selective_coding(
    axial_coding_result: AxialCodingResult,
    settings: Optional[SelectiveCodingSettings] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> SelectiveCodingResult:
    """Integrate the axial result into a core category, storyline, hypotheses and model."""
    _require(axial_coding_result, "axial_coding_result")
    settings = settings or SelectiveCodingSettings()
    raise_if_cancelled(cancel_event, "selective coding")

    axial = axial_coding_result
    started = time.perf_counter()

    core_category = CoreCategorySelector().select(axial.categories, axial.relations, axial.paradigm_model)
    storyline = StorylineComposer().compose(core_category, axial.paradigm_model, len(axial.causal_chains))
    hypotheses = HypothesisGenerator().generate(core_category, axial)
    logger.debug("Hypothesis type stats: %s", analyze_hypothesis_types(hypotheses))

    duplicates = find_duplicate_hypotheses(hypotheses, settings.duplicate_similarity_threshold)
    for pair in duplicates:
        logger.warning(
            "Duplicate hypotheses %s and %s (similarity %.2f)",
            pair.first_hypothesis_id,
            pair.second_hypothesis_id,
            pair.similarity,
        )

    theoretical_model = TheoreticalModelBuilder().build(
        core_category, axial, hypotheses, settings.integration_threshold
    )
    integration = IntegrationEvaluator().evaluate(axial.concepts, axial.relations, hypotheses)

    logger.info(
        "Selective coding finished: core=%r hypotheses=%s duplicates=%s coherence=%.2f elapsed_ms=%.1f",
        core_category.name,
        len(hypotheses),
        len(duplicates),
        integration.coherence,
        _elapsed_ms(started),
    )
    return SelectiveCodingResult(
        core_category=core_category,
        storyline=storyline,
        hypotheses=hypotheses,
        theoretical_model=theoretical_model,
        integration=integration,
        duplicate_hypotheses=duplicates,
    )


def logical_consistency(hypotheses: Sequence[Hypothesis], duplicates: Sequence[DuplicateHypothesisPair]) -> float:
    """Share of hypotheses not involved in any duplicate pair."""
    if not hypotheses:
        return 0.0
    flagged = {p.first_hypothesis_id for p in duplicates} | {p.second_hypothesis_id for p in duplicates}
    return 1.0 - len(flagged) / len(hypotheses)


def quality_metrics(cluster_count: int, selective: SelectiveCodingResult) -> QualityMetrics:
    hypotheses = selective.hypotheses
    coherence = selective.integration.coherence
    evidence = sum(h.confidence for h in hypotheses) / len(hypotheses) if hypotheses else 0.0
    diversity = min(cluster_count / CONCEPT_DIVERSITY_CLUSTERS, 1.0)
    consistency = logical_consistency(hypotheses, selective.duplicate_hypotheses)
    overall = (coherence + evidence + diversity + consistency) / 4
    return QualityMetrics(
        overall_quality=round(overall, 3),
        coherence_score=round(coherence, 3),
        evidence_strength=round(evidence, 3),
        concept_diversity=round(diversity, 3),
        logical_consistency=round(consistency, 3),
    )


async def run_grounded_theory_analysis(
    clusters: Sequence[Cluster],
    settings: Optional[GroundedTheorySettings] = None,
    port: Optional[ConceptExtractionPort] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AnalysisExecutionResult:
    """Run all three phases and attach a summary, quality metrics and collected warnings."""
    _require(clusters, "clusters")
    settings = settings or GroundedTheorySettings()
    started = time.perf_counter()

    open_results = await perform_open_coding(clusters, settings.open_coding, port, cancel_event)
    axial = await perform_axial_coding(open_results, settings.axial_coding, cancel_event)
    selective = await perform_selective_coding(axial, settings.selective_coding, cancel_event)

    warnings = [f"{r.cluster_id}: {warning}" for r in open_results for warning in r.warnings]
    warnings.extend(
        f"Duplicate hypotheses {p.first_hypothesis_id} / {p.second_hypothesis_id} ({p.similarity:.2f})"
        for p in selective.duplicate_hypotheses
    )

    summary = GroundedTheoryResultData(
        open_coding=OpenCodingSummary(
            cluster_count=len(open_results),
            concept_count=sum(len(r.extracted_concepts) for r in open_results),
        ),
        axial_coding=AxialCodingSummary(
            category_count=len(axial.categories),
            relation_count=len(axial.relations),
            causal_chain_count=len(axial.causal_chains),
        ),
        selective_coding=SelectiveCodingSummary(
            core_category=selective.core_category.name,
            hypothesis_count=len(selective.hypotheses),
            integration_quality=round(selective.integration.coherence * 100),
        ),
        storyline=selective.storyline,
        hypotheses=selective.hypotheses,
    )

    execution_time = round(_elapsed_ms(started))
    logger.info(
        "Grounded theory analysis finished: clusters=%s warnings=%s execution_ms=%s",
        len(clusters),
        len(warnings),
        execution_time,
    )
    return AnalysisExecutionResult(
        open_coding=open_results,
        axial_coding=axial,
        selective_coding=selective,
        result=summary,
        quality_metrics=quality_metrics(len(clusters), selective),
        execution_time=execution_time,
        warnings=warnings,
    )
