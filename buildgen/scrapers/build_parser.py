"""
buildgen/scrapers/build_parser.py
═══════════════════════════════════════════════════════════════════════════════
Fextralife build-catalog HTML → list[Build].

Page structure we rely on (adapt selectors if the site changes):

  <h3 class="bonfire">Sample Build — Level 40</h3>    ← one build per heading
  <p>Short description…</p>                            ← optional, before or after
  <ul>
    <li><strong>Class:</strong> Vagabond</li>
    <li><strong>Main Weapon:</strong> <a>Longsword</a></li>
    <li><strong>Talismans:</strong> <a>…</a>, <a>…</a></li>
  </ul>
  <p>At level 40: 40 Vigor, 20 Strength, 18 Dexterity</p>

  • The <ul> must appear within a few siblings of the heading, else the
    block is skipped
  • Link text is preferred for values; without links the plain text is split
    on ",", "/" and "and"
  • A block that blows up is skipped and reported in ParseResult.diagnostics;
    one bad block never aborts the page
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup, Tag

from buildgen.core.config import STAT_NAMES
from buildgen.models import Build

log = logging.getLogger("build_parser")

HEADING_SELECTOR = "h3.bonfire"
MAX_LIST_SCAN    = 6      # siblings after the heading searched for the <ul>
MAX_STATS_SCAN   = 10     # siblings after the <ul> searched for the stats <p>

LEVEL_RE      = re.compile(r"Level\s*(\d{1,3})", re.IGNORECASE)
STAT_PAIRS_RE = re.compile(r"(\d{1,3})\s+([A-Za-z]+)")
VALUE_SPLIT   = re.compile(r",|/|\s+and\s+")

_STAT_LOOKUP = {s.lower(): s for s in STAT_NAMES}


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParseDiagnostic:
    index:   int          # position of the heading in the document (0-based)
    heading: str
    message: str


@dataclass
class ParseResult:
    builds:      list[Build] = field(default_factory=list)
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)


class BlockSkipped(Exception):
    """A heading that can't yield a build (no list, no name)."""


# ── Helpers ───────────────────────────────────────────────────────────────────

def normalize_stat_name(raw: str) -> str:
    s = raw.strip()
    known = _STAT_LOOKUP.get(s.lower())
    if known:
        return known
    # Unknown words are kept, not dropped
    return s[:1].upper() + s[1:].lower()


def parse_stats(text: str) -> dict[str, int]:
    stats: dict[str, int] = {}
    for number, word in STAT_PAIRS_RE.findall(text):
        stats[normalize_stat_name(word)] = int(number)
    return stats


def _looks_like_stats(text: str) -> bool:
    return "at level" in text.lower() or STAT_PAIRS_RE.search(text) is not None


def _next_tags(tag: Tag, limit: int):
    """Up to ``limit`` following element siblings (text nodes skipped)."""
    sib = tag.find_next_sibling()
    steps = 0
    while sib is not None and steps < limit:
        yield sib
        sib = sib.find_next_sibling()
        steps += 1


def _item_values(li: Tag, label_tag: Tag) -> list[str]:
    links = [
        a.get_text(" ", strip=True)
        for a in li.find_all("a")
        if not any(p is label_tag for p in a.parents)
    ]
    links = [t for t in links if t]
    if links:
        return links

    text  = li.get_text(" ", strip=True)
    label = label_tag.get_text(" ", strip=True)
    if label and text.startswith(label):
        text = text[len(label):]
    text = text.strip().lstrip(":").strip()
    return [p.strip() for p in VALUE_SPLIT.split(text) if p.strip()]


def list_items_to_map(ul: Tag) -> dict[str, list[str]]:
    """
    <li><strong>Label:</strong> values</li>  →  {"Label": [...], "label": [...]}

    Both the original and the lowercased label are stored so lookups
    tolerate inconsistent capitalisation in the markup.
    """
    entries: dict[str, list[str]] = {}
    for li in ul.find_all("li"):
        strong = li.find(["strong", "b"])
        if strong is None:
            continue
        label = strong.get_text(" ", strip=True).replace(":", "").strip()
        if not label:
            continue
        values = _item_values(li, strong)
        entries[label] = values
        entries[label.lower()] = values
    return entries


def _lookup(entries: dict[str, list[str]], *labels: str) -> list[str]:
    """First non-missing label wins; each tried as written, then lowercased."""
    for label in labels:
        for candidate in (label, label.lower()):
            if candidate in entries:
                return list(entries[candidate])
    return []


def _first(values: list[str]) -> Optional[str]:
    return values[0] if values else None


# ── Parser ────────────────────────────────────────────────────────────────────

class BuildParser:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or log

    def parse(self, html: str) -> ParseResult:
        soup   = BeautifulSoup(html, "html.parser")
        result = ParseResult()

        for idx, heading in enumerate(soup.select(HEADING_SELECTOR)):
            title = heading.get_text(" ", strip=True)
            try:
                result.builds.append(self._parse_block(heading, title))
            except BlockSkipped as ex:
                self._log.warning(f"Skipping build block {idx} '{title}': {ex}")
                result.diagnostics.append(ParseDiagnostic(idx, title, str(ex)))
            except Exception as ex:
                self._log.error(f"Failed to parse build block {idx} '{title}': {ex}")
                result.diagnostics.append(
                    ParseDiagnostic(idx, title, f"{type(ex).__name__}: {ex}")
                )

        self._log.info(
            f"Parsed {len(result.builds)} builds "
            f"({len(result.diagnostics)} blocks skipped)"
        )
        return result

    def _parse_block(self, heading: Tag, title: str) -> Build:
        if not title:
            raise BlockSkipped("heading has no text")

        ul = next((t for t in _next_tags(heading, MAX_LIST_SCAN) if t.name == "ul"), None)
        if ul is None:
            raise BlockSkipped(f"no <ul> within {MAX_LIST_SCAN} siblings of heading")

        m = LEVEL_RE.search(title)
        entries = list_items_to_map(ul)

        armour = _lookup(entries, "Armor")
        if not armour:
            armour = _lookup(entries, "Armour", "Armor Set", "Armour Set")

        talismans = _lookup(entries, "Talismans", "Talisman")
        talismans += _lookup(entries, "Alternate Talismans", "Alternate Talisman")

        return Build(
            name=title,
            level=m.group(1) if m else None,
            description=self._description(ul),
            starting_class=_first(_lookup(entries, "Class", "Starting Class")),
            flask_spread=_first(_lookup(entries, "Flask Spread")),
            main_weapon=_first(_lookup(entries, "Main Weapon", "Weapon")),
            off_hand_weapon=_first(_lookup(entries, "Off-Hand Weapon", "Off-hand", "Offhand Weapon")),
            shield=_first(_lookup(entries, "Shield")),
            armour_set=armour,
            talismans=talismans,
            skills=_lookup(entries, "Skills", "Skill", "Ashes of War"),
            spells=_lookup(entries, "Spells", "Spell"),
            crystal_tears=_lookup(entries, "Crystal Tear", "Crystal Tears"),
            great_runes=_lookup(entries, "Great Runes", "Great Rune"),
            stats=self._stats(ul),
            primary_stats=_lookup(entries, "Primary Stats", "Primary Stat"),
            secondary_stats=_lookup(entries, "Secondary Stats", "Secondary Stat"),
        )

    @staticmethod
    def _description(ul: Tag) -> Optional[str]:
        for sib in (ul.find_previous_sibling(), ul.find_next_sibling()):
            if sib is not None and sib.name == "p":
                text = sib.get_text(" ", strip=True)
                if text:
                    return text
        return None

    @staticmethod
    def _stats(ul: Tag) -> dict[str, int]:
        for sib in _next_tags(ul, MAX_STATS_SCAN):
            if sib.name != "p":
                continue
            text = sib.get_text(" ", strip=True)
            if _looks_like_stats(text):
                return parse_stats(text)
        return {}
