"""Packages the selective-coding outputs into a theoretical model."""

from typing import List, Sequence

from gta_python_backend.schemas import AxialCodingResult, CoreCategory, Hypothesis, TheoreticalModel

THEORETICAL_MODEL_ID = "model_1"


class TheoreticalModelBuilder:
    def build(
        self,
        core_category: CoreCategory,
        axial: AxialCodingResult,
        hypotheses: Sequence[Hypothesis],
        integration_threshold: float,
    ) -> TheoreticalModel:
        # Hypotheses at or above the threshold are promoted to propositions.
        propositions = [h.statement for h in hypotheses if h.confidence >= integration_threshold]

        limitations: List[str] = []
        for entry in [item for h in hypotheses for item in h.limitations] + core_category.contradicting_factors:
            if entry not in limitations:
                limitations.append(entry)

        return TheoreticalModel(
            id=THEORETICAL_MODEL_ID,
            name=f"Theoretical model of {core_category.name}",
            description=(
                f"Theory organized around {core_category.name} with "
                f"{len(propositions)} of {len(hypotheses)} hypotheses adopted as propositions"
            ),
            core_category=core_category.id,
            concept_network=list(axial.relations),
            propositions=propositions,
            scope=(
                f"{len(axial.concepts)} concepts in {len(axial.categories)} categories, "
                f"{len(axial.relations)} relations, {len(axial.causal_chains)} causal chains"
            ),
            limitations=limitations,
        )
