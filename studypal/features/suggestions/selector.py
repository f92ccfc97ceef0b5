"""
Suggestion templates keyed by check-in thresholds.

select_suggestions() is pure: the same mood/energy/focus always gives the same
bucket. Responses hold at most MAX_SUGGESTIONS items plus a "not now" option.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping


class SuggestionType:
    FOCUS = "focus"
    SELF_CARE = "self_care"
    MICRO_STEP = "micro_step"


@dataclass(frozen=True)
class Suggestion:
    id: str
    label: str
    why: str
    est_min: int
    type: str


class SuggestionInputError(ValueError):
    """Rejected check-in input; message is returned to the client as-is."""


MAX_SUGGESTIONS = 2
RATING_FIELDS = ("mood", "energy", "focus")

MISSING_DATA = "Missing required check-in data"
OUT_OF_RANGE = "Ratings must be between 1 and 5"

CRISIS_SUPPORT = Suggestion(
    id="crisis-support",
    label="Consider reaching out for support",
    why="You don't have to handle everything alone",
    est_min=0,
    type=SuggestionType.SELF_CARE,
)

TEMPLATES: Dict[str, List[Suggestion]] = {
    "low_mood_low_energy": [
        Suggestion(
            id="gentle-start",
            label="Take 5 minutes to organize your space",
            why="Small actions can help you feel more in control",
            est_min=5,
            type=SuggestionType.MICRO_STEP,
        ),
        Suggestion(
            id="self-care",
            label="Try a brief breathing exercise",
            why="This can help ground you in the present moment",
            est_min=3,
            type=SuggestionType.SELF_CARE,
        ),
    ],
    "low_focus": [
        Suggestion(
            id="micro-focus",
            label="Set a 10-minute timer for one small task",
            why="Short bursts can be easier when focus is challenging",
            est_min=10,
            type=SuggestionType.FOCUS,
        ),
        Suggestion(
            id="break-first",
            label="Take a short walk, then try 15 minutes of work",
            why="Movement can help improve focus and energy",
            est_min=20,
            type=SuggestionType.SELF_CARE,
        ),
    ],
    "good_energy": [
        Suggestion(
            id="momentum",
            label="Pick your most important task and work for 25 minutes",
            why="You have good energy right now - use it wisely",
            est_min=25,
            type=SuggestionType.FOCUS,
        ),
        Suggestion(
            id="prep-tomorrow",
            label="Spend 10 minutes planning tomorrow",
            why="Set yourself up for success when energy is available",
            est_min=10,
            type=SuggestionType.MICRO_STEP,
        ),
    ],
    "balanced": [
        Suggestion(
            id="focused-work",
            label="Work on your top priority for 20 minutes",
            why="You seem centered - a good time for focused work",
            est_min=20,
            type=SuggestionType.FOCUS,
        ),
        Suggestion(
            id="maintain-momentum",
            label="Complete one small task to build momentum",
            why="Small wins can carry you through the day",
            est_min=15,
            type=SuggestionType.MICRO_STEP,
        ),
    ],
}

NOT_NOW = {
    "message": "That's okay too. You can come back when you're ready.",
    "alternative": "Would you like to just set a gentle reminder for later?",
}


def parse_ratings(payload: Any) -> Dict[str, int]:
    """
    Pull mood/energy/focus out of a decoded JSON body.

    Missing, null, empty or 0 ratings -> MISSING_DATA; non-integers or values outside 1..5 -> OUT_OF_RANGE.
    """
    if not isinstance(payload, Mapping):
        raise SuggestionInputError(MISSING_DATA)
    values = [payload.get(name) for name in RATING_FIELDS]
    if any(v is None or v == 0 or v is False or v == "" for v in values):
        raise SuggestionInputError(MISSING_DATA)
    ratings = {}
    for name, value in zip(RATING_FIELDS, values):
        if isinstance(value, bool):
            raise SuggestionInputError(OUT_OF_RANGE)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int) or not 1 <= value <= 5:
            raise SuggestionInputError(OUT_OF_RANGE)
        ratings[name] = value
    return ratings


def bucket_for(mood: int, energy: int, focus: int) -> str:
    """Name of the template bucket for these ratings ("crisis" for the support-only case)."""
    if mood == 1 and energy == 1:
        return "crisis"
    if mood <= 2 and energy <= 2:
        return "low_mood_low_energy"
    if focus <= 2:
        return "low_focus"
    if energy >= 4:
        return "good_energy"
    return "balanced"


def select_suggestions(mood: int, energy: int, focus: int) -> List[Suggestion]:
    bucket = bucket_for(mood, energy, focus)
    if bucket == "crisis":
        return [CRISIS_SUPPORT]
    return list(TEMPLATES[bucket])


def get_greeting(mood: int, energy: int, focus: int) -> str:
    average = (mood + energy + focus) / 3
    if average <= 2:
        return "Thank you for checking in, especially when things feel hard."
    if average <= 3.5:
        return "I see where you're at right now. Let's find something that feels manageable."
    return "You're feeling pretty good today. Let's make the most of it."


def get_encouragement(mood: int, energy: int, focus: int) -> str:
    if mood <= 2:
        return "Remember, small steps count. You don't need to do everything today."
    if focus <= 2:
        return "When focus is challenging, shorter sessions often work better."
    if energy >= 4:
        return "Your energy is strong today. Use it in a way that feels sustainable."
    return "You're building momentum one small action at a time."


def build_response(mood: int, energy: int, focus: int) -> Dict[str, Any]:
    """Full JSON-ready payload: suggestions (max 2), not_now, context."""
    suggestions = select_suggestions(mood, energy, focus)[:MAX_SUGGESTIONS]
    return {
        "suggestions": [asdict(s) for s in suggestions],
        "not_now": dict(NOT_NOW),
        "context": {
            "greeting": get_greeting(mood, energy, focus),
            "encouragement": get_encouragement(mood, energy, focus),
        },
    }
