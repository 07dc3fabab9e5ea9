from typing import Literal

# Card condition grades, best to worst.
Condition = Literal["NM", "LP", "MP", "HP", "DMG"]
CONDITIONS: tuple[str, ...] = ("NM", "LP", "MP", "HP", "DMG")

DECK_SLOTS: tuple[str, ...] = ("library", "commander", "co-commander")

MAX_NOTES_LENGTH = 1000
