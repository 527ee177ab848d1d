"""
SelectionNormalizer -- raw onboarding selections to a canonical preference record.

The onboarding UI sends ``{category_id: [option label, ...]}``. Only four
categories feed the stored profile:

    diet    -> dietary_restrictions (all values)
    focus   -> activity_types (all values)
    budget  -> budget_range (first value)
    vibe    -> experience_intensity (first value) + interests (all values)

Everything else is ignored. Single-select categories should already carry at
most one value; extras are discarded rather than rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class PreferenceRecord:
    """Canonical taste profile persisted once per user at crew creation."""

    dietary_restrictions: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    cuisine_preferences: list[str] = field(default_factory=list)
    activity_types: list[str] = field(default_factory=list)
    preferred_time: str | None = None
    preferred_day: str | None = None
    budget_range: str | None = None
    group_size_preference: int | None = None
    social_preference: str | None = None
    preferred_locations: list[str] = field(default_factory=list)
    max_travel_distance: int | None = None
    experience_intensity: str | None = None
    interests: list[str] = field(default_factory=list)

    def to_columns(self) -> dict[str, Any]:
        """Map to the camelCase ``user_preferences`` column names."""
        return {_camel(k): v for k, v in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _first(values: list[str]) -> str | None:
    return values[0] if values else None


def normalize(selections: Mapping[str, list[str]]) -> PreferenceRecord:
    """Build a PreferenceRecord. Total: absent categories yield defaults."""

    def get(key: str) -> list[str]:
        return list(selections.get(key) or [])

    vibe = get("vibe")
    budget = get("budget")

    return PreferenceRecord(
        dietary_restrictions=get("diet"),
        activity_types=get("focus"),
        budget_range=_first(budget),
        experience_intensity=_first(vibe),
        interests=vibe,
    )


def clean_selections(raw: Mapping[str, Any] | None) -> dict[str, list[str]]:
    """
    Coerce client-submitted selections into a SelectionState.

    Every key is kept. List values are filtered to their non-empty string
    entries; any other value becomes an empty list.
    """
    cleaned: dict[str, list[str]] = {}
    for key, value in (raw or {}).items():
        if isinstance(value, list):
            cleaned[key] = [entry for entry in value if isinstance(entry, str) and entry]
        else:
            cleaned[key] = []
    return cleaned
