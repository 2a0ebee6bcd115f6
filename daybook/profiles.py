"""
App profiles.

Each tracker app is the same store with its own slots, tag vocabulary
and view settings. Tags are string-valued enums: the value is what gets
persisted, so members may be added or reordered freely.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PlantKind(str, Enum):
    FOLIAGE = "foliage"
    FLOWERING = "flowering"
    SUCCULENT = "succulent"
    CACTUS = "cactus"
    HERB = "herb"
    TREE = "tree"


class CareAction(str, Enum):
    WATER = "water"
    FERTILIZE = "fertilize"
    REPOT = "repot"
    PRUNE = "prune"
    MIST = "mist"


class ScentFamily(str, Enum):
    FLORAL = "floral"
    FRUITY = "fruity"
    WOODY = "woody"
    FRESH = "fresh"
    SPICY = "spicy"
    GOURMAND = "gourmand"


class BurnNote(str, Enum):
    EVEN = "even"
    TUNNELING = "tunneling"
    SOOT = "soot"
    STRONG_THROW = "strong_throw"
    WEAK_THROW = "weak_throw"


class SmileCategory(str, Enum):
    PEOPLE = "people"
    NATURE = "nature"
    ACHIEVEMENT = "achievement"
    FOOD = "food"
    SURPRISE = "surprise"
    OTHER = "other"


class MoodColor(str, Enum):
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    GRAY = "gray"


class PromptKind(str, Enum):
    JOKE = "joke"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class Profile:
    """
    Settings for one tracker app.

    Attributes:
        name: Profile key, also the entries slot name
        title: Display name
        tags: Allowed tag enum for entries (None = free-form tags)
        log_tags: Allowed tag enum for dependent log entries
        has_log: Whether entries own a dependent log collection
        uses_interval: Whether entries carry a care interval
        search_field: Text field searched by filters
        reset_tag: Log tag that restarts the parent entry's interval
    """
    name: str
    title: str
    tags: Optional[type[Enum]] = None
    log_tags: Optional[type[Enum]] = None
    has_log: bool = False
    uses_interval: bool = False
    search_field: str = "title"
    reset_tag: Optional[str] = None

    @property
    def entries_slot(self) -> str:
        return self.name

    @property
    def log_slot(self) -> Optional[str]:
        return f"{self.name}.log" if self.has_log else None

    def tag_values(self, log: bool = False) -> Optional[list[str]]:
        vocabulary = self.log_tags if log else self.tags
        if vocabulary is None:
            return None
        return [member.value for member in vocabulary]

    def validate_tag(self, tag: Optional[str], log: bool = False) -> None:
        """Raise ValueError if ``tag`` is not in the profile vocabulary."""
        allowed = self.tag_values(log)
        if tag is None or allowed is None:
            return
        if tag not in allowed:
            raise ValueError(
                f"Unknown tag {tag!r} for {self.name}. Allowed: {', '.join(allowed)}"
            )


PROFILES: dict[str, Profile] = {
    p.name: p
    for p in (
        Profile("journal", "Journal", search_field="any"),
        Profile("plants", "Plant care", tags=PlantKind, log_tags=CareAction,
                has_log=True, uses_interval=True, reset_tag=CareAction.WATER.value),
        Profile("candles", "Candle collection", tags=ScentFamily, log_tags=BurnNote,
                has_log=True),
        Profile("smiles", "Smile diary", tags=SmileCategory, search_field="any"),
        Profile("moods", "Mood colours", tags=MoodColor, search_field="body"),
        Profile("jokes", "Jokes and challenges", tags=PromptKind),
    )
}


def get_profile(name: str) -> Profile:
    """Look up a profile by name."""
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown profile: {name!r}. Available: {', '.join(PROFILES)}"
        ) from None
