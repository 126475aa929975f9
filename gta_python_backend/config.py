"""Shared environment configuration constants for the grounded-theory backend."""
import os

# --- API Keys ---
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022")

# --- External concept extraction ---
# function: POST to CONCEPT_FUNCTION_URL, llm: prompt the configured LLM, disabled: statistical only
CONCEPT_EXTRACTION_MODE = os.getenv("CONCEPT_EXTRACTION_MODE", "function").strip().lower()
CONCEPT_FUNCTION_URL = os.getenv("CONCEPT_FUNCTION_URL")
CONCEPT_FUNCTION_TOKEN = os.getenv("CONCEPT_FUNCTION_TOKEN")
AI_TEXT_LIMIT = int(os.getenv("AI_TEXT_LIMIT", "8000"))
AI_EXTRACTION_TIMEOUT_SECONDS = float(os.getenv("AI_EXTRACTION_TIMEOUT_SECONDS", "30"))

# --- Pipeline ---
MAX_CLUSTER_CONCURRENCY = int(os.getenv("MAX_CLUSTER_CONCURRENCY", "4"))

# --- Server ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://localhost:5174",
    ).split(",")
    if origin.strip()
]
PROMPTS_FILE = os.getenv("PROMPTS_FILE")
