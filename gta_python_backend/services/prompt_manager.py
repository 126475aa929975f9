"""
Prompt Manager Service

Loads LLM prompt templates from prompts.json and renders them with
``string.Template`` substitution. The file is re-read when its mtime
changes, so prompts can be tuned without restarting the server.
"""

import json
import logging
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional

from gta_python_backend import config as app_config

logger = logging.getLogger(__name__)


class PromptManager:
    """Read-only access to the prompts configuration file."""

    def __init__(self, prompts_file: str = "prompts.json"):
        self.prompts_file = Path(prompts_file)
        self._prompts_cache: Dict[str, Any] = {}
        self._file_mtime: Optional[float] = None
        self.reload()

    def reload(self) -> None:
        """Reload prompts from file (hot-reload support)"""
        if not self.prompts_file.exists():
            raise FileNotFoundError(f"Prompts file not found: {self.prompts_file}")

        with open(self.prompts_file, "r", encoding="utf-8") as f:
            self._prompts_cache = json.load(f)

        self._file_mtime = self.prompts_file.stat().st_mtime
        logger.debug("Loaded %s prompts from %s", len(self.list_prompts()), self.prompts_file)

    def _check_reload(self) -> None:
        if self.prompts_file.exists() and self.prompts_file.stat().st_mtime != self._file_mtime:
            self.reload()

    def list_prompts(self) -> List[str]:
        return sorted(self._prompts_cache.get("prompts", {}).keys())

    def get_prompt(self, prompt_name: str) -> Dict[str, Any]:
        """
        Get a specific prompt configuration

        Raises:
            KeyError: If prompt not found
        """
        self._check_reload()

        prompts = self._prompts_cache.get("prompts", {})
        if prompt_name not in prompts:
            raise KeyError(f"Prompt not found: {prompt_name}")
        return dict(prompts[prompt_name])

    def render_prompt(self, prompt_name: str, variables: Dict[str, Any]) -> str:
        """
        Render a prompt template with ``$variable`` substitution.

        Raises:
            ValueError: If the template references a variable that was not supplied
        """
        template = Template(self.get_prompt(prompt_name).get("template", ""))
        try:
            return template.substitute(variables)
        except KeyError as e:
            missing_var = str(e).strip("'")
            raise ValueError(
                f"Missing required variable '{missing_var}' for prompt '{prompt_name}'"
            ) from e

    def get_prompt_metadata(self, prompt_name: str) -> Dict[str, Any]:
        """Model, temperature and token limit for a prompt, falling back to file defaults."""
        prompt_config = self.get_prompt(prompt_name)
        defaults = self._prompts_cache.get("defaults", {})
        return {
            "description": prompt_config.get("description", ""),
            "model": prompt_config.get("model", defaults.get("default_model")),
            "temperature": prompt_config.get("temperature", defaults.get("default_temperature", 0.2)),
            "max_tokens": prompt_config.get("max_tokens", defaults.get("default_max_tokens", 2000)),
        }


_prompt_manager_instance: Optional[PromptManager] = None


def get_prompt_manager() -> PromptManager:
    """Shared PromptManager reading PROMPTS_FILE or the packaged prompts.json."""
    global _prompt_manager_instance

    if _prompt_manager_instance is None:
        prompts_file = app_config.PROMPTS_FILE or str(Path(__file__).parent.parent / "prompts.json")
        _prompt_manager_instance = PromptManager(prompts_file=prompts_file)

    return _prompt_manager_instance
