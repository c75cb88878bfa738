"""
Token-budgeted block chunking for semgraph.

Key insight: blocks are the atomic unit of provenance, so a chunk never
splits a block. Chunks are grown greedily up to an approximate token budget
and share a trailing overlap with the next chunk so that cross-block context
survives the chunk boundary.
"""

import math
from dataclasses import dataclass, field

from semgraph.models import Block

# Default per-block cost on top of the text estimate (ids, type tags, JSON framing)
DEFAULT_BLOCK_OVERHEAD = 8


@dataclass
class BlockChunk:
    """A contiguous slice of blocks, [start, end) in the source order."""

    chunk_id: str
    start: int
    end: int
    blocks: list[Block] = field(default_factory=list)

    def __len__(self) -> int:
        return self.end - self.start


def estimate_tokens(text: str) -> int:
    """Approximate token count (~4 chars/token), never less than 1."""
    return max(1, math.ceil(len(text or "") / 4))


def block_cost(block: Block, overhead: int = DEFAULT_BLOCK_OVERHEAD) -> int:
    return estimate_tokens(block.text) + overhead


def chunk_blocks(
    blocks: list[Block],
    target_tokens: int,
    overlap_tokens: int,
    block_overhead: int = DEFAULT_BLOCK_OVERHEAD,
    chunk_prefix: str = "c",
) -> list[BlockChunk]:
    """
    Split an ordered block list into overlapping, token-budgeted chunks.

    Every chunk holds at least one block, even when that block alone
    exceeds the budget. The next chunk starts `overlap` blocks before the
    previous end, so the final blocks are revisited by shorter tail chunks.
    Overlap is capped below the chunk length so the next start always
    advances; an overlap budget of 0 disables overlap.

    Args:
        blocks: Ordered content blocks
        target_tokens: Approximate token budget per chunk
        overlap_tokens: Token budget for the trailing overlap (0 = none)
        block_overhead: Fixed cost added to each block's estimate
        chunk_prefix: Prefix for generated chunk ids

    Returns:
        List of BlockChunk objects with strictly increasing starts
    """
    if target_tokens <= 0:
        raise ValueError(f"Chunk token budget must be positive (target={target_tokens})")
    if overlap_tokens < 0:
        raise ValueError(f"Overlap token budget must not be negative (overlap={overlap_tokens})")
    if not blocks:
        return []

    costs = [block_cost(b, block_overhead) for b in blocks]
    chunks = []
    i = 0

    while i < len(blocks):
        running = 0
        end = i
        while end < len(blocks):
            if end > i and running + costs[end] > target_tokens:
                break
            running += costs[end]
            end += 1

        chunks.append(
            BlockChunk(
                chunk_id=f"{chunk_prefix}{len(chunks)}",
                start=i,
                end=end,
                blocks=list(blocks[i:end]),
            )
        )

        # Walk backwards from the end to size the overlap
        overlap = 0
        overlap_sum = 0
        for k in range(end - 1, i - 1, -1):
            overlap_sum += costs[k]
            if overlap_sum > overlap_tokens:
                break
            overlap += 1

        chunk_len = end - i
        if overlap >= chunk_len:
            overlap = max(0, chunk_len - 1)

        i = end - overlap

    return chunks
