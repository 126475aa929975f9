"""Walks directed causal relations into ordered, cycle-free concept chains."""

import logging
from typing import List, Optional, Sequence, Set

from gta_python_backend.schemas import CausalChain, ConceptRelation, RelationType

logger = logging.getLogger(__name__)

MAX_EXTENSION_HOPS = 5


class CausalChainBuilder:
    """
    Greedy forward chaining over causal relations.

    Relations whose source has no incoming causal relation are tried first, so
    A->B, B->C yields the single chain [A, B, C] whatever order the relations
    arrive in. A relation used as a later link of one chain never starts
    another one.
    """

    def __init__(self, max_extension_hops: int = MAX_EXTENSION_HOPS):
        self.max_extension_hops = max_extension_hops

    def build_chains(self, relations: Sequence[ConceptRelation]) -> List[CausalChain]:
        causal = [
            r for r in relations
            if r.relation_type == RelationType.CAUSAL and r.source_concept_id != r.target_concept_id
        ]
        targets = {r.target_concept_id for r in causal}
        heads = [i for i, r in enumerate(causal) if r.source_concept_id not in targets]
        inner = [i for i, r in enumerate(causal) if r.source_concept_id in targets]

        consumed: Set[int] = set()
        chains: List[CausalChain] = []
        for start in heads + inner:
            if start in consumed:
                continue
            links = self._extend(start, causal, consumed)
            sequence = [causal[links[0]].source_concept_id] + [causal[i].target_concept_id for i in links]
            if len(sequence) < 2:
                continue

            index = len(chains)
            strengths = [causal[i].strength for i in links]
            chains.append(
                CausalChain(
                    id=f"chain_{index}",
                    name=f"Causal chain {index + 1}",
                    description=f"{len(sequence)}-step causal sequence",
                    concept_sequence=sequence,
                    strength=sum(strengths) / len(strengths),
                    evidence=[entry for i in links for entry in causal[i].evidence],
                )
            )

        logger.debug("Built %s causal chains from %s causal relations", len(chains), len(causal))
        return chains

    def _extend(self, start: int, causal: Sequence[ConceptRelation], consumed: Set[int]) -> List[int]:
        links = [start]
        sequence = [causal[start].source_concept_id, causal[start].target_concept_id]
        for _ in range(self.max_extension_hops):
            following = self._next_link(sequence, causal, consumed, links)
            if following is None:
                break
            links.append(following)
            consumed.add(following)
            sequence.append(causal[following].target_concept_id)
        return links

    @staticmethod
    def _next_link(
        sequence: List[str],
        causal: Sequence[ConceptRelation],
        consumed: Set[int],
        links: List[int],
    ) -> Optional[int]:
        tail = sequence[-1]
        for i, relation in enumerate(causal):
            if i in consumed or i in links:
                continue
            if relation.source_concept_id == tail and relation.target_concept_id not in sequence:
                return i
        return None
