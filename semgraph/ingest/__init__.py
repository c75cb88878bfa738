"""
SG construction pipeline for semgraph.

Handles block chunking, per-chunk graph extraction and the global
canonicalization pass.
"""

from .chunking import chunk_blocks, estimate_tokens, BlockChunk
from .chunk_extractor import ChunkGraphExtractor
from .canonicalizer import GraphCanonicalizer
from .node_identity import stable_chunk_node_id, stable_canonical_node_id
from .schemas import ParseOk, ParseError, SchemaValidationError, parse_payload

__all__ = [
    "chunk_blocks",
    "estimate_tokens",
    "BlockChunk",
    "ChunkGraphExtractor",
    "GraphCanonicalizer",
    "stable_chunk_node_id",
    "stable_canonical_node_id",
    "ParseOk",
    "ParseError",
    "SchemaValidationError",
    "parse_payload",
]
