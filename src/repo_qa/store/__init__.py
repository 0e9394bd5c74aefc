"""Persistence of the ingested repository and answer history."""

from .models import QARecord, RepoState, qa_to_dict, snippet_to_dict
from .state import DEFAULT_HISTORY_SIZE, StateStore

__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "QARecord",
    "RepoState",
    "StateStore",
    "qa_to_dict",
    "snippet_to_dict",
]
