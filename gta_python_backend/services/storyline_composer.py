"""Narrative rendering of the paradigm model around the core category."""

from typing import Sequence

from gta_python_backend.schemas import CoreCategory, ParadigmModel

EMPTY_SECTION = "- (none identified)"

STORYLINE_TEMPLATE = """\
## Integrated theory of {core_name}

### Central phenomenon
{phenomenon} is positioned as the most important phenomenon in this analysis.

### Causal conditions
The phenomenon is mainly brought about by the following conditions:
{causal_conditions}

### Context
The phenomenon emerges and unfolds against the following background:
{context}

### Intervening conditions
The following factors mediate or moderate how the phenomenon develops:
{intervening_conditions}

### Action strategies
Participants respond to the phenomenon with these strategies and actions:
{action_strategies}

### Consequences
These strategies and actions lead to the following consequences:
{consequences}

### Causal chains
{chain_count} causal chains were identified, showing how the phenomenon develops over time.

### Theoretical implication
{core_name} is not an isolated phenomenon but a composite system of interacting factors."""


def numbered(items: Sequence[str]) -> str:
    if not items:
        return EMPTY_SECTION
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def bulleted(items: Sequence[str]) -> str:
    if not items:
        return EMPTY_SECTION
    return "\n".join(f"- {item}" for item in items)


class StorylineComposer:
    def compose(self, core_category: CoreCategory, paradigm: ParadigmModel, chain_count: int) -> str:
        return STORYLINE_TEMPLATE.format(
            core_name=core_category.name,
            phenomenon=paradigm.phenomenon,
            causal_conditions=numbered(paradigm.causal_conditions),
            context=bulleted(paradigm.context),
            intervening_conditions=bulleted(paradigm.intervening_conditions),
            action_strategies=numbered(paradigm.action_strategies),
            consequences=bulleted(paradigm.consequences),
            chain_count=chain_count,
        )
