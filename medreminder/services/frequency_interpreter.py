"""
Frequency Interpreter
=====================

Maps a free-text dosing frequency ("twice daily", "every 8 hours",
"before bed") to the hours of the day at which a dose is due.

Frequencies come either from the fixed phrases offered when adding a
medicine by hand or from AI-extracted prescription text, so no grammar is
assumed. Rules are plain substring checks evaluated in order; the first
match wins and unmatched text falls back to three doses a day.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class FrequencyRule:
    """A single row of the frequency table"""
    needles: Tuple[str, ...]
    hours: Tuple[int, ...]

    def matches(self, text: str) -> bool:
        return any(needle in text for needle in self.needles)


# Order matters: "once" must win over "every 12 hours once", "twice"
# over "twice, before bed", and the "N time" rules over the interval ones.
FREQUENCY_RULES: List[FrequencyRule] = [
    FrequencyRule(("once", "1 time"), (9,)),
    FrequencyRule(("twice", "2 time"), (9, 21)),
    FrequencyRule(("3 time", "three time"), (9, 14, 21)),
    FrequencyRule(("4 time", "four time"), (8, 12, 16, 20)),
    FrequencyRule(("every 4 hour",), (0, 4, 8, 12, 16, 20)),
    FrequencyRule(("every 6 hour",), (6, 12, 18)),
    FrequencyRule(("every 8 hour",), (8, 16)),
    FrequencyRule(("every 12 hour",), (9, 21)),
    FrequencyRule(("before bed", "bedtime"), (21,)),
    FrequencyRule(("morning",), (8,)),
]

DEFAULT_HOURS: Tuple[int, ...] = (9, 14, 21)


def interpret(frequency_text: Optional[str]) -> List[int]:
    """
    Return the dose hours for a frequency description.

    Always returns a non-empty, ascending list of hours in 0-23.
    """
    text = (frequency_text or "").lower()

    for rule in FREQUENCY_RULES:
        if rule.matches(text):
            return list(rule.hours)

    return list(DEFAULT_HOURS)
