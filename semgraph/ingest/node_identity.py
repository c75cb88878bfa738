"""
Node identity management for semgraph.

Provides deterministic node IDs for both graph phases:
1. Chunk-stable ids: hash of (chunkId, localId) only, never of type or text,
   so re-extracting a chunk maps the same slot to the same id even when the
   model rewords the node.
2. Canonical ids: hash of (type, canonicalKey), so re-canonicalization with
   an unchanged key is idempotent.
"""

import hashlib

CHUNK_NODE_PREFIX = "sg:chunk"
CANONICAL_NODE_PREFIX = "sg:canon"

# Hex digits kept from the sha1 digest
ID_HASH_LENGTH = 12


def _short_hash(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:ID_HASH_LENGTH]


def stable_chunk_node_id(chunk_id: str, local_id: str) -> str:
    """
    Generate a chunk-scoped node id.

    Examples:
        stable_chunk_node_id("doc1:c0", "N1") -> "sg:chunk:doc1:c0:<12 hex>"
    """
    return f"{CHUNK_NODE_PREFIX}:{chunk_id}:{_short_hash(f'{chunk_id}::{local_id}')}"


def stable_canonical_node_id(node_type: str, key: str) -> str:
    """
    Generate a canonical node id from the node type and its canonical key.

    The key is whitespace-trimmed before hashing.
    """
    key = key.strip()
    return f"{CANONICAL_NODE_PREFIX}:{node_type}:{_short_hash(f'{node_type}::{key}')}"
