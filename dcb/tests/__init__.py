"""
Test suite for the DCB engine.

Focus areas:
- Query semantics and the tag index invariant
- Conditional append (conflict, success, concurrency)
- Decision model building
- Example domain scenarios
"""
