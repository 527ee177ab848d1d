"""
Selection snapshot codec.

The snapshot column is free-form JSON written by older clients, seed scripts
and this service. Nothing past ``decode`` trusts its shape: a key survives only
if its value is a list made entirely of non-empty strings. Anything else is
treated as absent data, never as an error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

SelectionSnapshot = dict[str, list[str]]


def _is_choice_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(entry, str) and len(entry) > 0 for entry in value
    )


def decode(raw: Any) -> SelectionSnapshot:
    """
    Parse a persisted snapshot into ``{category: [choice, ...]}``.

    Accepts the decoded JSON object or its serialized string form. Returns an
    empty dict for ``None``, lists, primitives and unparseable strings; drops
    invalid keys individually.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("selection_snapshot unparseable, treating as empty")
            return {}

    if not isinstance(raw, Mapping):
        return {}

    snapshot: SelectionSnapshot = {}
    dropped = 0
    for key, value in raw.items():
        if isinstance(key, str) and _is_choice_list(value):
            snapshot[key] = list(value)
        else:
            dropped += 1

    if dropped:
        logger.debug("selection_snapshot dropped %d malformed keys", dropped)
    return snapshot


def encode(snapshot: Mapping[str, list[str]]) -> SelectionSnapshot:
    """Produce the JSON-serializable form written to the snapshot column."""
    return {str(key): [str(choice) for choice in choices] for key, choices in snapshot.items()}
