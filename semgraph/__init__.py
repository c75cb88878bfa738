"""
semgraph - Semantic Graph bootstrap service

Builds a typed knowledge graph from a document's content blocks:
- Token-budgeted block chunking with overlap
- Per-chunk graph extraction with chunk-stable node ids
- Global canonicalization/merge pass with provenance union
- Content-addressed node embedding cache
- Background bootstrap jobs with pollable progress
"""

__version__ = "1.0.0"
