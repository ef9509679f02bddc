"""
Cache package for large-value storage.

This package provides:
- Bounded store interface (base.py) and an in-memory implementation (memory_store.py)
- Physical key layout and manifest model (layout.py)
- Chunk encoder/decoder (encoder.py, decoder.py)
- The SuperCache facade (facade.py) and scope registry (scopes.py)
"""
