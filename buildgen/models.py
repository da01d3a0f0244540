"""
buildgen/models.py
One scraped character build.

JSON shape uses camelCase (startingClass, mainWeapon, armourSet, ...):
  • optional strings  → null when unset
  • sequence fields   → always an array, possibly empty
  • stats             → {"Vigor": 40, "Strength": 20, ...}

Builds are frozen — an "edit" replaces the whole cached list.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from buildgen.core.config import MAGIC_STATS, MELEE_STATS


class Build(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    name:            str
    level:           Optional[str] = None
    description:     Optional[str] = None
    starting_class:  Optional[str] = None
    flask_spread:    Optional[str] = None
    main_weapon:     Optional[str] = None
    off_hand_weapon: Optional[str] = None
    shield:          Optional[str] = None

    armour_set:    list[str] = Field(default_factory=list)
    talismans:     list[str] = Field(default_factory=list)
    skills:        list[str] = Field(default_factory=list)
    spells:        list[str] = Field(default_factory=list)
    crystal_tears: list[str] = Field(default_factory=list)
    great_runes:   list[str] = Field(default_factory=list)

    stats: dict[str, int] = Field(default_factory=dict)

    # Only used to group builds for the filtered views
    primary_stats:   list[str] = Field(default_factory=list)
    secondary_stats: list[str] = Field(default_factory=list)

    def _has_primary(self, names: tuple[str, ...]) -> bool:
        wanted = {n.lower() for n in names}
        return any(s.lower() in wanted for s in self.primary_stats)

    def is_magic_build(self) -> bool:
        """Primary stats include Intelligence or Faith."""
        return self._has_primary(MAGIC_STATS)

    def is_melee_build(self) -> bool:
        """Primary stats include Strength or Dexterity."""
        return self._has_primary(MELEE_STATS)


BUILD_LIST = TypeAdapter(list[Build])


def builds_to_json(builds: list[Build]) -> list[dict]:
    """JSON-ready dicts in the camelCase wire shape."""
    return BUILD_LIST.dump_python(builds, mode="json", by_alias=True)
