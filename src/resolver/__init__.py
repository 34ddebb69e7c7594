"""Peer dependency resolution engine."""

from .cache import MetadataCache, RegistryClient
from .candidates import CandidateGenerator
from .evaluator import Evaluator
from .heuristics import HeuristicStore

__all__ = [
    "MetadataCache",
    "RegistryClient",
    "CandidateGenerator",
    "Evaluator",
    "HeuristicStore",
]
