"""Pydantic models shared by the grounded-theory services and routers.

Attributes are snake_case in Python and serialize to the camelCase wire names
used by the clustering and presentation collaborators (``documentIds``,
``sourceConceptId`` ...). Entities are frozen: later stages read them and build
copies with ``model_copy(update=...)`` instead of mutating upstream output.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gta_python_backend import config


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityModel(CamelModel):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Enumerations
# ============================================================================

class ConceptType(str, Enum):
    PHENOMENON = "phenomenon"
    CAUSAL_CONDITION = "causal_condition"
    INTERVENING_CONDITION = "intervening_condition"
    CONTEXT = "context"
    ACTION_STRATEGY = "action_strategy"
    CONSEQUENCE = "consequence"


class RelationType(str, Enum):
    CAUSAL = "causal"
    CORRELATIONAL = "correlational"
    CONDITIONAL = "conditional"
    CONTEXTUAL = "contextual"
    SEQUENTIAL = "sequential"


class HypothesisType(str, Enum):
    DESCRIPTIVE = "descriptive"
    EXPLANATORY = "explanatory"
    PREDICTIVE = "predictive"


# ============================================================================
# Cluster input
# ============================================================================

class ClusterDocument(CamelModel):
    id: str
    title: str = ""
    content: str = ""


class Cluster(CamelModel):
    id: str
    name: str = ""
    document_ids: List[str] = Field(default_factory=list)
    documents: List[ClusterDocument] = Field(default_factory=list)


# ============================================================================
# Theory entities
# ============================================================================

class ConceptCategory(EntityModel):
    id: str
    name: str
    description: str = ""
    type: ConceptType
    concepts: List[str] = Field(default_factory=list)


class ConceptItem(EntityModel):
    id: str
    concept: str
    description: str = ""
    evidence: List[str] = Field(default_factory=list)
    frequency: int = Field(default=0, ge=0)
    relevance: float = Field(ge=0.0, le=1.0)
    category: ConceptCategory
    cluster_id: str = ""


class ConceptRelation(EntityModel):
    id: str
    source_concept_id: str
    target_concept_id: str
    relation_type: RelationType
    # Causal-pattern relations may exceed 1; consumers clamp where they need a probability.
    strength: float = Field(ge=0.0)
    evidence: List[str] = Field(default_factory=list)
    bidirectional: bool = False


class CausalChain(EntityModel):
    id: str
    name: str
    description: str = ""
    concept_sequence: List[str] = Field(min_length=2)
    strength: float = Field(ge=0.0)
    evidence: List[str] = Field(default_factory=list)


class ParadigmModel(EntityModel):
    phenomenon: str
    causal_conditions: List[str] = Field(default_factory=list)
    context: List[str] = Field(default_factory=list)
    intervening_conditions: List[str] = Field(default_factory=list)
    action_strategies: List[str] = Field(default_factory=list)
    consequences: List[str] = Field(default_factory=list)


class CoreCategory(EntityModel):
    id: str
    name: str
    description: str = ""
    supporting_concepts: List[str] = Field(default_factory=list)
    contradicting_factors: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    central_phenomenon: str = ""


class Hypothesis(EntityModel):
    id: str
    statement: str
    type: HypothesisType
    confidence: float = Field(ge=0.0, le=1.0)
    supporting_evidence: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    testable: bool = True


class TheoreticalModel(EntityModel):
    id: str
    name: str
    description: str = ""
    core_category: str  # CoreCategory.id
    concept_network: List[ConceptRelation] = Field(default_factory=list)
    propositions: List[str] = Field(default_factory=list)
    scope: str = ""
    limitations: List[str] = Field(default_factory=list)


class IntegrationScores(EntityModel):
    coherence: float = Field(ge=0.0, le=1.0)
    density: float = Field(ge=0.0, le=1.0)
    variation: float = Field(ge=0.0, le=1.0)


class DuplicateHypothesisPair(EntityModel):
    first_hypothesis_id: str
    second_hypothesis_id: str
    similarity: float = Field(ge=0.0, le=1.0)


# ============================================================================
# Phase results
# ============================================================================

class OpenCodingResult(EntityModel):
    cluster_id: str
    cluster_name: str = ""
    extracted_concepts: List[ConceptItem] = Field(default_factory=list)
    dominant_themes: List[str] = Field(default_factory=list)
    code_frequency: Dict[str, int] = Field(default_factory=dict)
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    analysis_date: str = Field(default_factory=utc_timestamp)
    warnings: List[str] = Field(default_factory=list)


class AxialCodingResult(EntityModel):
    concepts: List[ConceptItem] = Field(default_factory=list)
    categories: List[ConceptCategory] = Field(default_factory=list)
    relations: List[ConceptRelation] = Field(default_factory=list)
    causal_chains: List[CausalChain] = Field(default_factory=list)
    paradigm_model: ParadigmModel
    analysis_date: str = Field(default_factory=utc_timestamp)


class SelectiveCodingResult(EntityModel):
    core_category: CoreCategory
    storyline: str
    hypotheses: List[Hypothesis] = Field(default_factory=list)
    theoretical_model: TheoreticalModel
    integration: IntegrationScores
    duplicate_hypotheses: List[DuplicateHypothesisPair] = Field(default_factory=list)
    analysis_date: str = Field(default_factory=utc_timestamp)


# ============================================================================
# Settings
# ============================================================================

class OpenCodingSettings(CamelModel):
    threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    use_external_ai: bool = True
    ai_timeout_seconds: float = Field(
        default_factory=lambda: config.AI_EXTRACTION_TIMEOUT_SECONDS, gt=0
    )
    max_concurrency: int = Field(default_factory=lambda: config.MAX_CLUSTER_CONCURRENCY, ge=1)


class AxialCodingSettings(CamelModel):
    relation_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    random_seed: Optional[int] = None
    deterministic_category_strength: bool = False


class SelectiveCodingSettings(CamelModel):
    integration_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    duplicate_similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class GroundedTheorySettings(CamelModel):
    open_coding: OpenCodingSettings = Field(default_factory=OpenCodingSettings)
    axial_coding: AxialCodingSettings = Field(default_factory=AxialCodingSettings)
    selective_coding: SelectiveCodingSettings = Field(default_factory=SelectiveCodingSettings)


# ============================================================================
# External concept extraction contract
# ============================================================================

class ConceptExtractionRequest(CamelModel):
    action: Literal["extract_concepts"] = "extract_concepts"
    text_content: str
    cluster_name: str = ""
    analysis_type: Literal["open_coding"] = "open_coding"


# ============================================================================
# Full-run summary
# ============================================================================

class OpenCodingSummary(CamelModel):
    cluster_count: int
    concept_count: int


class AxialCodingSummary(CamelModel):
    category_count: int
    relation_count: int
    causal_chain_count: int


class SelectiveCodingSummary(CamelModel):
    core_category: str
    hypothesis_count: int
    integration_quality: int  # percent


class GroundedTheoryResultData(CamelModel):
    open_coding: OpenCodingSummary
    axial_coding: AxialCodingSummary
    selective_coding: SelectiveCodingSummary
    storyline: str
    hypotheses: List[Hypothesis] = Field(default_factory=list)


class QualityMetrics(CamelModel):
    overall_quality: float
    coherence_score: float
    evidence_strength: float
    concept_diversity: float
    logical_consistency: float


class AnalysisExecutionResult(CamelModel):
    open_coding: List[OpenCodingResult]
    axial_coding: AxialCodingResult
    selective_coding: SelectiveCodingResult
    result: GroundedTheoryResultData
    quality_metrics: QualityMetrics
    execution_time: int  # milliseconds
    warnings: List[str] = Field(default_factory=list)


# ============================================================================
# Router request bodies
# ============================================================================

class OpenCodingRequest(CamelModel):
    clusters: List[Cluster]
    settings: OpenCodingSettings = Field(default_factory=OpenCodingSettings)


class AxialCodingRequest(CamelModel):
    open_coding_results: List[OpenCodingResult]
    settings: AxialCodingSettings = Field(default_factory=AxialCodingSettings)


class SelectiveCodingRequest(CamelModel):
    axial_coding_result: AxialCodingResult
    settings: SelectiveCodingSettings = Field(default_factory=SelectiveCodingSettings)


class GroundedTheoryAnalysisRequest(CamelModel):
    clusters: List[Cluster]
    settings: GroundedTheorySettings = Field(default_factory=GroundedTheorySettings)
