import json
import logging
import os
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from gta_python_backend.services.llm_config import get_env_llm_defaults

logger = logging.getLogger(__name__)

_CLIENT_CACHE: Dict[Tuple[str, float, bool], "LocalLLMClient"] = {}
# Servers that answered 4xx to response_format; later calls skip it up front.
_PLAIN_TEXT_ONLY_BASE_URLS: set[str] = set()
TRACE_API_CALLS = os.getenv("TRACE_API_CALLS", "true").strip().lower() in {"1", "true", "yes", "on"}
API_LOG_PREVIEW_CHARS = int(os.getenv("API_LOG_PREVIEW_CHARS", "280"))

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)


def preview_text(value: Any, limit: int = API_LOG_PREVIEW_CHARS) -> str:
    text = str(value or "")
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...<truncated {len(text) - limit} chars>"


def extract_json_from_text(text: str) -> Any:
    """
    Pull the first JSON value out of an LLM reply.

    Handles reasoning wrappers, fenced code blocks and prose before or after the
    payload. Raises ``json.JSONDecodeError`` when nothing decodes.
    """
    if text is None:
        raise ValueError("LLM response text is empty")

    normalized = _THINK_BLOCK.sub("", str(text)).strip()
    if not normalized:
        raise json.JSONDecodeError("No JSON object found", str(text), 0)

    candidates = [normalized]
    candidates.extend(match.strip() for match in _FENCED_BLOCK.findall(normalized))
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    decoder = json.JSONDecoder()
    for index, char in enumerate(normalized):
        if char not in "{[":
            continue
        try:
            decoded, _ = decoder.raw_decode(normalized[index:])
            return decoded
        except json.JSONDecodeError:
            continue

    raise json.JSONDecodeError("No JSON object found", normalized, 0)


def get_local_client(config: Optional[Dict[str, Any]] = None) -> "LocalLLMClient":
    resolved = config or get_env_llm_defaults()
    base_url = str(resolved.get("base_url", "")).rstrip("/")
    timeout = float(resolved.get("timeout_seconds", 120))
    json_mode = bool(resolved.get("json_mode", True))

    key = (base_url, timeout, json_mode)
    if key not in _CLIENT_CACHE:
        _CLIENT_CACHE[key] = LocalLLMClient(base_url, timeout_seconds=timeout, json_mode=json_mode)
    return _CLIENT_CACHE[key]


class LocalLLMClient:
    """Minimal client for an OpenAI-compatible chat completions server."""

    def __init__(self, base_url: str, timeout_seconds: float = 120, json_mode: bool = True) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.json_mode = json_mode

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def _build_payload(
        self,
        model: str,
        messages: list,
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            payload["response_format"] = response_format
        elif self.json_mode and self.base_url not in _PLAIN_TEXT_ONLY_BASE_URLS:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def chat(
        self,
        model: str,
        messages: list,
        temperature: float = 0.2,
        max_tokens: int = 2000,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = self._build_payload(model, messages, temperature, max_tokens, response_format)
        if TRACE_API_CALLS:
            logger.info(
                "[LLM API] POST %s model=%s messages=%s json_mode=%s",
                self.chat_url,
                model,
                len(messages or []),
                payload.get("response_format", {}).get("type", "none"),
            )

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.chat_url, json=payload)
            if response.is_client_error and "response_format" in payload:
                logger.warning(
                    "Local LLM rejected response_format (%s); retrying as plain text.",
                    preview_text(response.text),
                )
                _PLAIN_TEXT_ONLY_BASE_URLS.add(self.base_url)
                payload.pop("response_format", None)
                response = await client.post(self.chat_url, json=payload)

            response.raise_for_status()
            if TRACE_API_CALLS:
                logger.info(
                    "[LLM API] %s status=%s preview=%s",
                    self.chat_url,
                    response.status_code,
                    preview_text(response.text),
                )
            return response.json()


async def local_chat_json(
    config: Dict[str, Any],
    messages: list,
    temperature: float = 0.2,
    max_tokens: int = 2000,
    response_format: Optional[Dict[str, Any]] = None,
) -> Any:
    client = get_local_client(config)
    response = await client.chat(
        model=config.get("chat_model", "qwen2.5-7b-instruct"),
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
        response_format=response_format,
    )
    content = response["choices"][0]["message"]["content"]
    return extract_json_from_text(content)
