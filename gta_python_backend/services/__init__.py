"""Services for the grounded-theory coding backend."""

from .grounded_theory_pipeline import (
    perform_axial_coding,
    perform_open_coding,
    perform_selective_coding,
    run_grounded_theory_analysis,
)
from .prompt_manager import PromptManager

__all__ = [
    'perform_open_coding',
    'perform_axial_coding',
    'perform_selective_coding',
    'run_grounded_theory_analysis',
    'PromptManager',
]
