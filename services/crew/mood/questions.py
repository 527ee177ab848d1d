"""
Mood question bank.

Each theme captures one signal key. A session is asked the themes it has not
answered yet, a few at a time, until either every theme is answered or the
session reaches the per-session question cap. An empty batch means the flow
is finished.

Theme order is fixed: factual/constraint themes first (they narrow the
candidate set the most), then preference themes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class QuestionTheme:
    id: str
    category: str
    """'factual' | 'constraint' | 'preference'"""
    prompt: str
    signal_key: str
    type: str
    """'scale' | 'choice'"""
    options: tuple[str, ...]
    reason: str


QUESTION_THEMES: tuple[QuestionTheme, ...] = (
    QuestionTheme(
        id="time-availability",
        category="factual",
        prompt="How much time do you have?",
        signal_key="timeAvailability",
        type="scale",
        options=("Quick", "A couple of hours", "All evening"),
        reason="Filters venues by how long the plan can run.",
    ),
    QuestionTheme(
        id="budget-sensitivity",
        category="constraint",
        prompt="How important is staying within budget?",
        signal_key="budgetSensitivity",
        type="scale",
        options=("Very", "Somewhat", "Not today"),
        reason="Keeps suggestions inside the crew's price range.",
    ),
    QuestionTheme(
        id="hunger-level",
        category="factual",
        prompt="Food situation?",
        signal_key="hungerLevel",
        type="choice",
        options=("Light bites", "Full meal", "Already ate"),
        reason="Decides if we pair dining with the plan.",
    ),
    QuestionTheme(
        id="weather-dependency",
        category="constraint",
        prompt="How does weather affect your plans?",
        signal_key="weatherDependency",
        type="choice",
        options=("Indoors only", "Flexible", "Outside no matter what"),
        reason="Balances indoor and outdoor venues.",
    ),
    QuestionTheme(
        id="energy-level",
        category="preference",
        prompt="What's your energy level right now?",
        signal_key="energyLevel",
        type="scale",
        options=("Mellow", "Moderate", "Pumped"),
        reason="Matches venue pacing to the crew's energy.",
    ),
    QuestionTheme(
        id="adventure-novelty",
        category="preference",
        prompt="How adventurous are you feeling?",
        signal_key="adventureLevel",
        type="scale",
        options=("Keep it familiar", "Open to ideas", "Surprise me"),
        reason="Trades favourites against something new.",
    ),
    QuestionTheme(
        id="experience-intensity",
        category="preference",
        prompt="What kind of experience are you looking for?",
        signal_key="experienceIntensity",
        type="choice",
        options=("Low-key", "Mix it up", "Go all out"),
        reason="Sets how immersive the plan should be.",
    ),
    QuestionTheme(
        id="social-vibe",
        category="preference",
        prompt="What kind of social vibe are you looking for?",
        signal_key="socialDynamics",
        type="choice",
        options=("Deep conversations", "Playful and competitive", "Big buzzing crowd"),
        reason="Shapes the atmosphere of the venues.",
    ),
    QuestionTheme(
        id="activity-vs-dining",
        category="preference",
        prompt="What sounds more appealing?",
        signal_key="activityFocus",
        type="choice",
        options=("Doing something", "Eating something", "Both"),
        reason="Weights activities against dining.",
    ),
    QuestionTheme(
        id="setting-preference",
        category="preference",
        prompt="Where would you rather be?",
        signal_key="settingPreference",
        type="choice",
        options=("Stay inside", "Get some air", "No preference"),
        reason="Helps match indoor vs outdoor venues.",
    ),
)


@dataclass
class MoodQuestion:
    id: str
    prompt: str
    type: str
    signal_key: str
    options: list[str] = field(default_factory=list)
    suggested_response: str | None = None
    reason: str | None = None

    @classmethod
    def from_theme(cls, theme: QuestionTheme) -> MoodQuestion:
        return cls(
            id=theme.id,
            prompt=theme.prompt,
            type=theme.type,
            signal_key=theme.signal_key,
            options=list(theme.options),
            reason=theme.reason,
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> MoodQuestion:
        return cls(
            id=str(payload["id"]),
            prompt=str(payload.get("prompt", "")),
            type=str(payload.get("type", "choice")),
            signal_key=str(payload["signalKey"]),
            options=list(payload.get("options") or []),
            suggested_response=payload.get("suggestedResponse"),
            reason=payload.get("reason"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "prompt": self.prompt,
            "type": self.type,
            "signalKey": self.signal_key,
            "options": list(self.options),
        }
        if self.suggested_response is not None:
            payload["suggestedResponse"] = self.suggested_response
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


def is_answered(value: Any) -> bool:
    """Empty strings and missing values do not count as answers."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def answered_signal_keys(answered_signals: Mapping[str, Any] | None) -> set[str]:
    return {key for key, value in (answered_signals or {}).items() if is_answered(value)}


def select_questions(
    answered_signals: Mapping[str, Any] | None,
    *,
    per_batch: int = 3,
    max_questions: int = 6,
) -> list[MoodQuestion]:
    """Next batch of unanswered themes; empty once the flow is finished."""
    answered = answered_signal_keys(answered_signals)
    remaining_budget = max_questions - len(answered)
    if remaining_budget <= 0:
        return []

    pending = [theme for theme in QUESTION_THEMES if theme.signal_key not in answered]
    limit = min(per_batch, remaining_budget)
    return [MoodQuestion.from_theme(theme) for theme in pending[:limit]]


def follow_up_for(participant_name: str | None, answered_count: int) -> str | None:
    name = (participant_name or "").strip()
    greeting = f"Thanks {name.split()[0]}! " if name else ""
    if answered_count == 0:
        return f"{greeting}A quick mood check so we can tune the plan to the crew."
    return f"{greeting}Just a couple more to narrow it down."
