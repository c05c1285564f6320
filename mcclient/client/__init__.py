"""Client module for mcclient."""

from .connection import ConnectionStatus, MemcacheClient
from .correlator import PendingFetch, PipelineCorrelator

__all__ = [
    "ConnectionStatus",
    "MemcacheClient",
    "PendingFetch",
    "PipelineCorrelator",
]
