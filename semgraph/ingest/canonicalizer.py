"""
Global graph canonicalization for semgraph.

Prevents graph fragmentation across chunks: the same concept extracted from
two overlapping chunks must end up as one node. The collaborator groups
mini-nodes into canonical groups (each with a canonical key and member ids)
and proposes edges between canonical keys; this module assigns canonical
ids, unions provenance and sanitizes the edge list.

Provenance is never lost for a referenced member: a canonical node's bgRefs
are the union of every member's bgRefs. Mini-nodes the merge response does
not reference at all are not force-included.
"""

import json
import logging
from typing import Optional

from semgraph.config import config
from semgraph.ingest.node_identity import stable_canonical_node_id
from semgraph.ingest.schemas import (
    CanonicalGraphPayload,
    ParseError,
    SchemaValidationError,
    parse_payload,
    raw_excerpt,
)
from semgraph.llm.service import AIService
from semgraph.models import (
    MAX_NODE_TEXT,
    SemanticEdge,
    SemanticGraph,
    SemanticNode,
    clamp_weight,
    union_refs,
)
from semgraph.prompts import CANONICALIZE_PROMPT, CANONICALIZE_SYSTEM_PROMPT, format_prompt

logger = logging.getLogger(__name__)


class GraphCanonicalizer:
    """
    Merge accumulated mini-graphs into one canonical SemanticGraph.

    Usage:
        canonicalizer = GraphCanonicalizer(service)
        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)
    """

    def __init__(
        self,
        service: AIService,
        temperature: Optional[float] = None,
        debug: Optional[bool] = None,
    ):
        self.service = service
        self.temperature = config.CANONICALIZE_TEMPERATURE if temperature is None else temperature
        self.debug = config.SG_DEBUG if debug is None else debug

    async def canonicalize(
        self,
        mini_nodes: list[SemanticNode],
        mini_edges: list[SemanticEdge],
        model: Optional[str] = None,
    ) -> SemanticGraph:
        """
        Run the global merge pass over every chunk's output.

        Args:
            mini_nodes: All mini-nodes, across chunks
            mini_edges: All mini-edges, across chunks
            model: Optional model override for the collaborator

        Returns:
            Canonical SemanticGraph

        Raises:
            SchemaValidationError: response does not match the canonical schema
            CollaboratorError: the collaborator call failed
        """
        if not mini_nodes:
            return SemanticGraph()

        user = format_prompt(
            CANONICALIZE_PROMPT,
            nodes_json=json.dumps([n.to_dict() for n in mini_nodes], indent=2, ensure_ascii=False),
            edges_json=json.dumps([e.to_dict() for e in mini_edges], indent=2, ensure_ascii=False),
        )
        raw = await self.service.chat_json(
            CANONICALIZE_SYSTEM_PROMPT, user, temperature=self.temperature, model=model
        )

        result = parse_payload(CanonicalGraphPayload, raw)
        if isinstance(result, ParseError):
            logger.warning(f"Canonicalization parse failed: {result.summary()}")
            if self.debug:
                logger.warning(f"[canon][raw] {raw_excerpt(raw)}")
            raise SchemaValidationError(
                f"SG canonicalization parse failed: {result.summary()}",
                result,
            )

        graph = build_canonical_graph(mini_nodes, result.payload)
        logger.info(
            f"Canonicalized {len(mini_nodes)} mini-nodes -> {len(graph.nodes)} nodes, "
            f"{len(graph.edges)} edges"
        )
        return graph


def build_canonical_graph(
    mini_nodes: list[SemanticNode],
    payload: CanonicalGraphPayload,
) -> SemanticGraph:
    """
    Assign canonical ids, union provenance and sanitize edges.

    Entries whose (type, key) collide resolve to one node; the first text
    wins and provenance is unioned.
    """
    mini_by_id = {n.id: n for n in mini_nodes}

    key_to_id: dict[str, str] = {}
    nodes_by_id: dict[str, SemanticNode] = {}
    referenced = set()

    for cn in payload.canonical_nodes:
        key = cn.key.strip()
        node_id = stable_canonical_node_id(cn.type, key)
        # A key declared under two types keeps its first id for edge resolution
        key_to_id.setdefault(key, node_id)

        member_refs = []
        for member_id in cn.member_ids:
            member = mini_by_id.get(member_id)
            if member is None:
                continue
            referenced.add(member_id)
            member_refs.append(member.bg_refs)

        existing = nodes_by_id.get(node_id)
        if existing is not None:
            existing.bg_refs = union_refs([existing.bg_refs] + member_refs)
            continue

        nodes_by_id[node_id] = SemanticNode(
            id=node_id,
            type=cn.type,
            text=cn.text[:MAX_NODE_TEXT],
            bg_refs=union_refs(member_refs),
        )

    orphans = len(mini_by_id) - len(referenced)
    if orphans > 0:
        logger.info(f"Canonicalization left {orphans} mini-nodes unreferenced")

    edges = []
    seen = set()
    for ce in payload.canonical_edges:
        from_id = key_to_id.get(ce.from_key.strip())
        to_id = key_to_id.get(ce.to_key.strip())
        if not from_id or not to_id or from_id == to_id:
            continue
        if (from_id, to_id) in seen:
            continue
        seen.add((from_id, to_id))
        edges.append(SemanticEdge(from_=from_id, to=to_id, weight=clamp_weight(ce.weight)))

    return SemanticGraph(nodes=list(nodes_by_id.values()), edges=edges)
