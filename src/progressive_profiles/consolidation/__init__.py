"""
Consolidation: the pure merge engine and the strategies that persist it.
"""

from .engine import (
    ConsolidationEngine,
    Subject,
    max_divergence,
    next_completeness,
    next_confidence,
)
from .consolidators import (
    AtomicConsolidator,
    Consolidator,
    FallbackConsolidator,
    create_consolidator,
)

__all__ = [
    "ConsolidationEngine",
    "Subject",
    "max_divergence",
    "next_confidence",
    "next_completeness",
    "Consolidator",
    "AtomicConsolidator",
    "FallbackConsolidator",
    "create_consolidator",
]
