import os
from typing import Any, Dict, Optional

DEFAULT_LOCAL_LLM_BASE_URL = "http://localhost:1234"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    return value_str in {"1", "true", "yes", "on"}


def get_env_llm_defaults() -> Dict[str, Any]:
    return {
        "mode": os.getenv("DEFAULT_LLM_MODE", "local"),
        "base_url": os.getenv("LOCAL_LLM_BASE_URL", DEFAULT_LOCAL_LLM_BASE_URL),
        "chat_model": os.getenv("LOCAL_LLM_CHAT_MODEL", "qwen2.5-7b-instruct"),
        "json_mode": _to_bool(os.getenv("LOCAL_LLM_JSON_MODE", "true")),
        "timeout_seconds": float(os.getenv("LOCAL_LLM_TIMEOUT_SECONDS", "120")),
    }


def merge_llm_config(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay per-request LLM settings on the environment defaults."""
    config = get_env_llm_defaults()
    if not overrides:
        return config

    sanitized = {}
    for key, value in overrides.items():
        if key == "json_mode":
            sanitized[key] = _to_bool(value)
        elif key == "mode":
            normalized = str(value).strip().lower()
            sanitized[key] = normalized if normalized in {"local", "online"} else config["mode"]
        elif key == "timeout_seconds":
            try:
                sanitized[key] = float(value)
            except (TypeError, ValueError):
                sanitized[key] = config["timeout_seconds"]
        else:
            sanitized[key] = value

    config.update(sanitized)
    config["base_url"] = str(config.get("base_url", "")).strip().rstrip("/")
    return config
