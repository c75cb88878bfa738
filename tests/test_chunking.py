"""
Tests for token-budgeted block chunking.
"""

import pytest

from semgraph.ingest.chunking import BlockChunk, block_cost, chunk_blocks, estimate_tokens
from semgraph.models import Block


class TestTokenEstimate:
    """Tests for the ~4 chars/token estimate."""

    def test_empty_text_costs_one(self):
        assert estimate_tokens("") == 1
        assert estimate_tokens(None) == 1

    def test_rounds_up(self):
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("x" * 32) == 8

    def test_block_cost_includes_overhead(self):
        block = Block(id="b1", type="paragraph", text="x" * 32)
        assert block_cost(block) == 16
        assert block_cost(block, overhead=0) == 8


class TestBlockChunk:
    """Tests for the BlockChunk dataclass."""

    def test_len(self):
        chunk = BlockChunk(chunk_id="c0", start=3, end=7)
        assert len(chunk) == 4


class TestChunkBlocks:
    """Tests for chunk_blocks()."""

    def test_empty_input(self):
        """No blocks, no chunks."""
        assert chunk_blocks([], target_tokens=100, overlap_tokens=10) == []

    @pytest.mark.parametrize("target,overlap", [(0, 10), (-5, 10), (100, -1)])
    def test_rejects_bad_budgets(self, twelve_blocks, target, overlap):
        with pytest.raises(ValueError):
            chunk_blocks(twelve_blocks, target_tokens=target, overlap_tokens=overlap)

    def test_splits_into_budgeted_chunks(self, twelve_blocks):
        """Four 16-token blocks fit a 64-token budget."""
        chunks = chunk_blocks(twelve_blocks, target_tokens=64, overlap_tokens=1)

        assert [(c.start, c.end) for c in chunks] == [(0, 4), (4, 8), (8, 12)]
        assert [c.chunk_id for c in chunks] == ["c0", "c1", "c2"]

    def test_zero_overlap_means_no_overlap(self, twelve_blocks):
        chunks = chunk_blocks(twelve_blocks, target_tokens=64, overlap_tokens=0)

        assert [(c.start, c.end) for c in chunks] == [(0, 4), (4, 8), (8, 12)]

    def test_overlap_shares_trailing_blocks(self, twelve_blocks):
        """A 16-token overlap budget carries one block into the next chunk."""
        chunks = chunk_blocks(twelve_blocks, target_tokens=64, overlap_tokens=16)

        assert [(c.start, c.end) for c in chunks] == [(0, 4), (3, 7), (6, 10), (9, 12), (11, 12)]
        assert chunks[0].blocks[-1].id == chunks[1].blocks[0].id

    def test_tail_chunks_revisit_last_blocks(self, twelve_blocks):
        """Reaching the last block does not end chunking while overlap remains."""
        chunks = chunk_blocks(twelve_blocks, target_tokens=64, overlap_tokens=32)

        assert [(c.start, c.end) for c in chunks] == [(0, 4), (2, 6), (4, 8), (6, 10), (8, 12), (10, 12), (11, 12)]
        assert chunks[-1].chunk_id == "c6"

    def test_covers_every_block(self, twelve_blocks):
        chunks = chunk_blocks(twelve_blocks, target_tokens=50, overlap_tokens=20)

        covered = set()
        for c in chunks:
            covered.update(range(c.start, c.end))
        assert covered == set(range(len(twelve_blocks)))
        assert chunks[-1].end == len(twelve_blocks)

    def test_starts_strictly_increase(self, twelve_blocks):
        chunks = chunk_blocks(twelve_blocks, target_tokens=40, overlap_tokens=40)

        starts = [c.start for c in chunks]
        assert starts == sorted(set(starts))
        assert all(len(c) >= 1 for c in chunks)

    def test_overlap_never_stalls(self, twelve_blocks):
        """An overlap budget bigger than the chunk is capped below the chunk length."""
        chunks = chunk_blocks(twelve_blocks, target_tokens=16, overlap_tokens=1000)

        assert len(chunks) == 12
        assert [c.start for c in chunks] == list(range(12))

    def test_oversized_block_gets_own_chunk(self):
        """A single block over budget still becomes a one-block chunk."""
        blocks = [
            Block(id="big", type="paragraph", text="y" * 4000),
            Block(id="small", type="paragraph", text="abcd"),
        ]
        chunks = chunk_blocks(blocks, target_tokens=100, overlap_tokens=10)

        assert [(c.start, c.end) for c in chunks] == [(0, 1), (1, 2)]
        assert chunks[0].blocks[0].id == "big"

    def test_chunk_prefix(self, sample_blocks):
        chunks = chunk_blocks(sample_blocks, target_tokens=1000, overlap_tokens=150, chunk_prefix="doc-1:c")

        assert [(c.start, c.end) for c in chunks] == [(0, 4), (1, 4), (2, 4), (3, 4)]
        assert [c.chunk_id for c in chunks] == ["doc-1:c0", "doc-1:c1", "doc-1:c2", "doc-1:c3"]
        assert [b.id for b in chunks[0].blocks] == ["b1", "b2", "b3", "b4"]

    def test_does_not_mutate_input(self, twelve_blocks):
        before = [b.to_dict() for b in twelve_blocks]
        chunk_blocks(twelve_blocks, target_tokens=64, overlap_tokens=16)
        assert [b.to_dict() for b in twelve_blocks] == before
