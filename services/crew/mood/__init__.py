"""
Mood check -- short personalized question batches answered per session.

Usage:
    from services.crew.mood import MoodService, MoodQuestionCache
"""

from __future__ import annotations

from services.crew.mood.cache import MoodQuestionCache
from services.crew.mood.responses import MoodService

__all__ = ["MoodQuestionCache", "MoodService"]
