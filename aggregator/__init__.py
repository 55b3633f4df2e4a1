"""
Aggregator Module

This module assembles composite character responses from the upstream sections.

Components:
- models/ - Response models, section and module keys
- sections.py - Per-section module fan-out
- assembler.py - Identity resolution, section fan-out and merging
- cache.py - Short-lived composite response cache
- query.py - Validated entry point used by the service
- service.py - FastAPI service
"""
