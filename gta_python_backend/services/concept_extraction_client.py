"""
External AI concept extraction.

The extractor depends only on ``ConceptExtractionPort``. Two implementations
ship here: one posts the request to a hosted extraction function, the other
renders the ``extract_concepts`` prompt and asks the configured LLM (local
OpenAI-compatible server or Anthropic) directly. Both return the raw
``{"success": bool, "concepts": [...]}`` payload; validation happens in the
extractor so that any malformed response degrades to zero AI concepts.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Protocol

import anthropic
import httpx

from gta_python_backend import config as app_config
from gta_python_backend.schemas import ConceptExtractionRequest
from gta_python_backend.services.errors import ConceptExtractionError
from gta_python_backend.services.llm_config import merge_llm_config
from gta_python_backend.services.local_llm_client import (
    TRACE_API_CALLS,
    extract_json_from_text,
    local_chat_json,
    preview_text,
)
from gta_python_backend.services.prompt_manager import PromptManager, get_prompt_manager

logger = logging.getLogger(__name__)

EXTRACT_CONCEPTS_PROMPT = "extract_concepts"


class ConceptExtractionPort(Protocol):
    async def extract_concepts(self, request: ConceptExtractionRequest) -> Dict[str, Any]:
        ...


class FunctionConceptExtractionClient:
    """Posts the extraction request to a hosted function endpoint."""

    def __init__(self, url: str, token: Optional[str] = None, timeout_seconds: float = 60.0):
        if not url:
            raise ConceptExtractionError("Concept extraction function URL is not configured")
        self.url = url
        self.token = token
        self.timeout_seconds = timeout_seconds

    async def extract_concepts(self, request: ConceptExtractionRequest) -> Dict[str, Any]:
        payload = request.model_dump(by_alias=True)
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        if TRACE_API_CALLS:
            logger.info(
                "[CONCEPT API] POST %s cluster=%s chars=%s",
                self.url,
                request.cluster_name,
                len(request.text_content),
            )
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
            if TRACE_API_CALLS:
                logger.info(
                    "[CONCEPT API] %s status=%s preview=%s",
                    self.url,
                    response.status_code,
                    preview_text(response.text),
                )
            return response.json()


class LLMConceptExtractionClient:
    """Asks the configured LLM for concepts using the ``extract_concepts`` prompt."""

    def __init__(
        self,
        llm_config: Optional[Dict[str, Any]] = None,
        prompt_manager: Optional[PromptManager] = None,
        client: Optional[anthropic.Anthropic] = None,
    ):
        self.llm_config = llm_config
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.client = client

    async def extract_concepts(self, request: ConceptExtractionRequest) -> Dict[str, Any]:
        prompt_text = self.prompt_manager.render_prompt(
            EXTRACT_CONCEPTS_PROMPT,
            {
                "cluster_name": request.cluster_name or "Untitled cluster",
                "text_content": request.text_content,
            },
        )
        metadata = self.prompt_manager.get_prompt_metadata(EXTRACT_CONCEPTS_PROMPT)
        resolved = merge_llm_config(self.llm_config)

        if resolved.get("mode") == "local":
            messages = [
                {
                    "role": "system",
                    "content": "You extract grounded-theory concepts and return valid JSON only.",
                },
                {"role": "user", "content": prompt_text},
            ]
            result = await local_chat_json(
                resolved,
                messages,
                temperature=metadata["temperature"],
                max_tokens=metadata["max_tokens"],
            )
        else:
            result = await self._call_anthropic(prompt_text, metadata)

        concepts = result.get("concepts") if isinstance(result, dict) else result
        if not isinstance(concepts, list):
            raise ConceptExtractionError("LLM response did not contain a concept list")
        return {"success": True, "concepts": concepts}

    def _anthropic_model(self, metadata: Dict[str, Any]) -> str:
        """Per-prompt ``model``, then ``ANTHROPIC_MODEL``, then the prompts file default."""
        prompt_model = self.prompt_manager.get_prompt(EXTRACT_CONCEPTS_PROMPT).get("model")
        return prompt_model or app_config.ANTHROPIC_MODEL or metadata.get("model")

    async def _call_anthropic(self, prompt_text: str, metadata: Dict[str, Any]) -> Any:
        if self.client is None:
            if not app_config.ANTHROPIC_API_KEY:
                raise ConceptExtractionError("ANTHROPIC_API_KEY not found in environment")
            self.client = anthropic.Anthropic(api_key=app_config.ANTHROPIC_API_KEY)

        # The SDK call blocks; run it off the event loop so the caller's timeout applies.
        message = await asyncio.to_thread(
            self.client.messages.create,
            model=self._anthropic_model(metadata),
            max_tokens=metadata["max_tokens"],
            temperature=metadata["temperature"],
            messages=[{"role": "user", "content": prompt_text}],
        )
        response_text = message.content[0].text
        try:
            return extract_json_from_text(response_text)
        except json.JSONDecodeError as exc:
            raise ConceptExtractionError(f"Could not parse concept JSON: {exc}") from exc


def get_concept_extraction_port(mode: Optional[str] = None) -> Optional[ConceptExtractionPort]:
    """Build the port selected by ``CONCEPT_EXTRACTION_MODE``; None means statistical-only."""
    resolved_mode = (mode or app_config.CONCEPT_EXTRACTION_MODE or "").strip().lower()

    if resolved_mode == "function":
        if not app_config.CONCEPT_FUNCTION_URL:
            logger.warning("CONCEPT_FUNCTION_URL is not set; AI concept extraction disabled")
            return None
        return FunctionConceptExtractionClient(
            app_config.CONCEPT_FUNCTION_URL,
            token=app_config.CONCEPT_FUNCTION_TOKEN,
            timeout_seconds=app_config.AI_EXTRACTION_TIMEOUT_SECONDS,
        )
    if resolved_mode == "llm":
        return LLMConceptExtractionClient()
    if resolved_mode not in {"", "disabled", "none", "off"}:
        logger.warning("Unknown CONCEPT_EXTRACTION_MODE %r; AI concept extraction disabled", resolved_mode)
    return None
