"""
raven_local

Feed adapters → normalize → classify/locate → fingerprint/dedupe → incident store → stability scoring.

The source set and geography are fixed per deployment. Region focus is configured via
configs/sources.yaml and the gazetteer/rule tables, not in the pipeline logic.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
