"""Grounded-theory coding API endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from gta_python_backend.schemas import (
    AnalysisExecutionResult,
    AxialCodingRequest,
    AxialCodingResult,
    GroundedTheoryAnalysisRequest,
    OpenCodingRequest,
    OpenCodingResult,
    SelectiveCodingRequest,
    SelectiveCodingResult,
)
from gta_python_backend.services.concept_extraction_client import (
    ConceptExtractionPort,
    get_concept_extraction_port,
)
from gta_python_backend.services.grounded_theory_pipeline import (
    perform_axial_coding,
    perform_open_coding,
    perform_selective_coding,
    run_grounded_theory_analysis,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/grounded-theory", tags=["grounded-theory"])


def get_extraction_port() -> Optional[ConceptExtractionPort]:
    return get_concept_extraction_port()


@router.get("/health")
async def health_check():
    """Health check endpoint for grounded theory API."""
    return {"status": "healthy", "service": "grounded_theory_api"}


@router.post("/open-coding", response_model=List[OpenCodingResult])
async def open_coding(
    request: OpenCodingRequest,
    port: Optional[ConceptExtractionPort] = Depends(get_extraction_port),
):
    """Extract and categorize concepts for each cluster."""
    try:
        return await perform_open_coding(request.clusters, request.settings, port)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("[GTA] Open coding failed for %s clusters", len(request.clusters))
        raise HTTPException(status_code=500, detail=f"Open coding failed: {str(exc)}") from exc


@router.post("/axial-coding", response_model=AxialCodingResult)
async def axial_coding(request: AxialCodingRequest):
    """Relate open-coding concepts and build the paradigm model."""
    try:
        return await perform_axial_coding(request.open_coding_results, request.settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("[GTA] Axial coding failed")
        raise HTTPException(status_code=500, detail=f"Axial coding failed: {str(exc)}") from exc


@router.post("/selective-coding", response_model=SelectiveCodingResult)
async def selective_coding(request: SelectiveCodingRequest):
    """Integrate an axial-coding result into a core category, storyline and hypotheses."""
    try:
        return await perform_selective_coding(request.axial_coding_result, request.settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("[GTA] Selective coding failed")
        raise HTTPException(status_code=500, detail=f"Selective coding failed: {str(exc)}") from exc


@router.post("/analyze", response_model=AnalysisExecutionResult)
async def analyze(
    request: GroundedTheoryAnalysisRequest,
    port: Optional[ConceptExtractionPort] = Depends(get_extraction_port),
):
    """Run open, axial and selective coding in one call."""
    try:
        return await run_grounded_theory_analysis(request.clusters, request.settings, port)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("[GTA] Grounded theory analysis failed for %s clusters", len(request.clusters))
        raise HTTPException(status_code=500, detail=f"Analysis failed: {str(exc)}") from exc
