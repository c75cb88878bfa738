"""
Per-chunk graph extraction for semgraph.

One collaborator call per chunk returns nodes (tagged with a model-chosen
localId) and edges between those localIds. The response is validated
strictly; ids are then rewritten to chunk-stable ids so the same
(chunk, localId) slot always lands on the same node id.
"""

import json
import logging
from typing import Optional

from semgraph.config import config
from semgraph.ingest.node_identity import stable_chunk_node_id
from semgraph.ingest.schemas import (
    ChunkGraphPayload,
    ParseError,
    SchemaValidationError,
    parse_payload,
    raw_excerpt,
)
from semgraph.llm.service import AIService
from semgraph.models import (
    MAX_NODE_TEXT,
    NODE_TYPES,
    BgSpanRef,
    Block,
    MiniGraph,
    SemanticEdge,
    SemanticNode,
    clamp_weight,
)
from semgraph.prompts import CHUNK_GRAPH_PROMPT, CHUNK_GRAPH_SYSTEM_PROMPT, format_prompt

logger = logging.getLogger(__name__)


class ChunkGraphExtractor:
    """
    Extract a mini-graph from one chunk of blocks.

    Usage:
        extractor = ChunkGraphExtractor(service)
        mini = await extractor.extract_mini_graph("doc1:c0", chunk.blocks)
        print(len(mini.nodes), len(mini.edges))
    """

    def __init__(
        self,
        service: AIService,
        temperature: Optional[float] = None,
        debug: Optional[bool] = None,
    ):
        """
        Initialize extractor.

        Args:
            service: Text collaborator used for extraction
            temperature: Sampling temperature (defaults to config)
            debug: Log raw payloads on schema failures (defaults to SG_DEBUG)
        """
        self.service = service
        self.temperature = config.CHUNK_GRAPH_TEMPERATURE if temperature is None else temperature
        self.debug = config.SG_DEBUG if debug is None else debug

    async def extract_mini_graph(
        self,
        chunk_id: str,
        blocks: list[Block],
        model: Optional[str] = None,
    ) -> MiniGraph:
        """
        Extract nodes and edges for one chunk.

        Args:
            chunk_id: Chunk identifier (document-qualified)
            blocks: Blocks in the chunk
            model: Optional model override for the collaborator

        Returns:
            MiniGraph with chunk-stable node ids and sanitized edges

        Raises:
            SchemaValidationError: response does not match the chunk graph schema
            CollaboratorError: the collaborator call failed
        """
        if not blocks:
            return MiniGraph()

        user = format_prompt(
            CHUNK_GRAPH_PROMPT,
            node_types=", ".join(NODE_TYPES),
            blocks_json=json.dumps([b.to_dict() for b in blocks], indent=2, ensure_ascii=False),
        )
        raw = await self.service.chat_json(
            CHUNK_GRAPH_SYSTEM_PROMPT, user, temperature=self.temperature, model=model
        )

        result = parse_payload(ChunkGraphPayload, raw)
        if isinstance(result, ParseError):
            logger.warning(f"Chunk graph parse failed (chunkId={chunk_id}): {result.summary()}")
            if self.debug:
                logger.warning(f"[chunk][raw] {raw_excerpt(raw)}")
            raise SchemaValidationError(
                f"SG chunk graph parse failed (chunkId={chunk_id}): {result.summary()}",
                result,
            )

        graph = build_mini_graph(chunk_id, result.payload)
        logger.debug(
            f"Chunk {chunk_id}: {len(graph.nodes)} nodes, {len(graph.edges)} edges "
            f"from {len(blocks)} blocks"
        )
        return graph


def build_mini_graph(chunk_id: str, payload: ChunkGraphPayload) -> MiniGraph:
    """
    Turn a validated chunk payload into a MiniGraph.

    Nodes are deduplicated by derived id (last one wins). Edges must resolve
    both ends to localIds from this same payload; self-loops and repeated
    (from, to) pairs are dropped and weights clamped into [-1, 1].
    """
    local_to_id: dict[str, str] = {}
    nodes_by_id: dict[str, SemanticNode] = {}

    for n in payload.nodes:
        node_id = stable_chunk_node_id(chunk_id, n.local_id)
        local_to_id[n.local_id] = node_id
        nodes_by_id[node_id] = SemanticNode(
            id=node_id,
            type=n.type,
            text=n.text[:MAX_NODE_TEXT],
            bg_refs=[BgSpanRef(block_id=n.block_id, from_=n.from_, to=n.to)],
        )

    edges = []
    seen = set()
    for e in payload.edges:
        from_id = local_to_id.get(e.from_)
        to_id = local_to_id.get(e.to)
        if not from_id or not to_id or from_id == to_id:
            continue
        if (from_id, to_id) in seen:
            continue
        seen.add((from_id, to_id))
        edges.append(SemanticEdge(from_=from_id, to=to_id, weight=clamp_weight(e.weight)))

    return MiniGraph(nodes=list(nodes_by_id.values()), edges=edges)
