"""
Dynamic Consistency Boundary engine

Event-sourced decision engine: build ad-hoc decision models from a tag-indexed
event log and append with optimistic concurrency scoped to what was read.
"""

__version__ = "0.1.0"
