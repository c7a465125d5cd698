"""Team-name normalisation and alias lookup against exchange runner labels."""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Dict, List, Set

logger = logging.getLogger(__name__)

# Known mismatches between bookmaker text and exchange runner names.
# Groups are symmetric: any label resolves to every label in its group.
TEAM_SYNONYMS: Dict[str, Sequence[str]] = {
    "Paris Saint-Germain": ("PSG", "Paris SG", "Paris St Germain", "Paris St-G", "Paris St G"),
    "Tottenham Hotspur": ("Tottenham", "Spurs"),
    "Leicester City": ("Leicester",),
    "Birmingham City": ("Birmingham",),
    "Exeter City": ("Exeter",),
    "Cheltenham Town": ("Cheltenham",),
    "Sheffield United": ("Sheffield Utd", "Sheff Utd"),
    "Huddersfield Town": ("Huddersfield",),
}

_SAINT = re.compile(r"\bsaint\b")
_ST = re.compile(r"\bst\.?\b")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_CLUB_SUFFIX = re.compile(r"\b(fc|afc|cf)\b")


def normalise_name(text: str | None) -> str:
    """Accent-free, lower-case, saint/st-unified key with club suffixes removed."""

    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()
    stripped = _ST.sub("st", _SAINT.sub("st", stripped))
    stripped = _CLUB_SUFFIX.sub("", _NON_ALNUM.sub(" ", stripped))
    return re.sub(r"\s+", " ", stripped).strip()


def _index_groups(groups: Iterable[Iterable[str]]) -> Dict[str, Set[str]]:
    index: Dict[str, Set[str]] = {}
    for group in groups:
        labels = [label for label in group if label]
        for label in labels:
            key = normalise_name(label)
            if not key:
                continue
            index.setdefault(key, set()).update(labels)
    return index


def index_from_inventory(payload: Mapping[str, Any]) -> Dict[str, Set[str]]:
    teams = payload.get("teams") if isinstance(payload, Mapping) else None
    if not isinstance(teams, list):
        return {}
    return _index_groups([entry.get("canonical") or "", *(entry.get("aliases") or [])] for entry in teams)


class TeamAliasIndex:
    """Alias lookup built from an inventory file plus the built-in synonym table.

    The inventory is loaded lazily on first use; ``reload()`` re-reads it and
    ``invalidate()`` drops it so the next lookup loads it again.
    """

    def __init__(
        self,
        inventory_path: Path | None = None,
        synonyms: Mapping[str, Sequence[str]] = TEAM_SYNONYMS,
    ) -> None:
        self.inventory_path = inventory_path
        self._builtin = _index_groups([canonical, *aliases] for canonical, aliases in synonyms.items())
        self._inventory: Dict[str, Set[str]] | None = None

    def invalidate(self) -> None:
        self._inventory = None

    def reload(self) -> int:
        """Re-read the inventory file; returns the number of indexed keys."""

        self._inventory = self._read_inventory()
        return len(self._inventory)

    def _read_inventory(self) -> Dict[str, Set[str]]:
        if self.inventory_path is None:
            return {}
        try:
            payload = json.loads(Path(self.inventory_path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("no alias inventory at %s; using built-in synonyms only", self.inventory_path)
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("unreadable alias inventory %s: %s", self.inventory_path, exc)
            return {}
        index = index_from_inventory(payload)
        logger.debug("loaded %d alias keys from %s", len(index), self.inventory_path)
        return index

    @property
    def inventory(self) -> Dict[str, Set[str]]:
        if self._inventory is None:
            self._inventory = self._read_inventory()
        return self._inventory

    def queries(self, team: str) -> List[str]:
        """Every known label for ``team``, the original name first."""

        key = normalise_name(team)
        found: List[str] = [team]
        for source in (self.inventory, self._builtin):
            for label in sorted(source.get(key, ())):
                if label not in found:
                    found.append(label)
        return found

    def runner_matches(self, runner_name: str, team: str, queries: Sequence[str] | None = None) -> bool:
        """Exact normalised match, or any query contained in the runner name."""

        runner_key = normalise_name(runner_name)
        if not runner_key:
            return False
        if runner_key == normalise_name(team):
            return True
        for query in queries if queries is not None else self.queries(team):
            query_key = normalise_name(query)
            if query_key and query_key in runner_key:
                return True
        return False
