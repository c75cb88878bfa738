"""
HTTP surface for semgraph (FastAPI).
"""
