"""
Core data model for the Semantic Graph (SG).

The same node/edge types serve both chunk-scoped mini-graphs and the
canonical document graph; only the id scheme differs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional, get_args

NodeType = Literal["goal", "claim", "evidence", "definition", "gap"]
NODE_TYPES = get_args(NodeType)

# Node text cap (characters)
MAX_NODE_TEXT = 280

SG_VERSION = 1


def clamp_weight(weight: float) -> float:
    """Clamp an edge weight into [-1, 1]."""
    return max(-1.0, min(1.0, float(weight)))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Block:
    """Atomic unit of document content. Read-only to the pipeline."""

    id: str
    type: str
    text: str

    @classmethod
    def from_dict(cls, data: dict) -> "Block":
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "paragraph")),
            text=str(data.get("text") or ""),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "text": self.text}


@dataclass(frozen=True)
class BgSpanRef:
    """Provenance entry: a source block and optional char offsets within it."""

    block_id: str
    from_: Optional[int] = None
    to: Optional[int] = None

    @property
    def key(self) -> tuple:
        return (self.block_id, self.from_, self.to)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"blockId": self.block_id}
        if self.from_ is not None:
            out["from"] = self.from_
        if self.to is not None:
            out["to"] = self.to
        return out


@dataclass
class SemanticNode:
    """A graph node (mini or canonical)."""

    id: str
    type: str
    text: str
    bg_refs: list[BgSpanRef] = field(default_factory=list)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"id": self.id, "type": self.type, "text": self.text}
        if self.bg_refs:
            out["bgRefs"] = [r.to_dict() for r in self.bg_refs]
        return out


@dataclass
class SemanticEdge:
    """Directed, weighted edge. Positive weight = support, negative = contradiction."""

    from_: str
    to: str
    weight: float

    def to_dict(self) -> dict:
        return {"from": self.from_, "to": self.to, "weight": self.weight}


@dataclass
class MiniGraph:
    """Chunk-scoped extraction result, prior to canonicalization."""

    nodes: list[SemanticNode] = field(default_factory=list)
    edges: list[SemanticEdge] = field(default_factory=list)


@dataclass
class SemanticGraph:
    """The persisted SG artifact."""

    nodes: list[SemanticNode] = field(default_factory=list)
    edges: list[SemanticEdge] = field(default_factory=list)
    updated_at: str = field(default_factory=utc_now_iso)
    version: int = SG_VERSION

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "updatedAt": self.updated_at,
        }


def union_refs(ref_lists) -> list[BgSpanRef]:
    """
    Union provenance lists, preserving first-seen order.

    Entries are deduplicated by (blockId, from, to).
    """
    seen = set()
    out = []
    for refs in ref_lists:
        for ref in refs:
            if ref.key in seen:
                continue
            seen.add(ref.key)
            out.append(ref)
    return out
