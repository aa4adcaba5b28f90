"""
Suggestion memoization for OrgConsolidate.

Read-through cache for per-facility suggestion lists. Entries are keyed by
a fingerprint of every input that feeds the computation, so editing a
facility or a candidate produces a new key instead of a stale hit.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, Dict, Hashable, List, Sequence, Tuple

logger = logging.getLogger(__name__)


def _entity_payload(entity: Any) -> Any:
    if is_dataclass(entity):
        return asdict(entity)
    return entity


def fingerprint(*parts: Any) -> str:
    """
    Generate a deterministic SHA-256 fingerprint of the given inputs.

    Args:
        *parts: Entities, entity sequences or plain JSON-serializable values

    Returns:
        Hex digest
    """
    payload = []
    for part in parts:
        if isinstance(part, (list, tuple)):
            payload.append([_entity_payload(item) for item in part])
        else:
            payload.append(_entity_payload(part))

    serialized = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class SuggestionCache:
    """
    Bounded least-recently-used cache of suggestion lists.

    Owned by the caller; the matching functions themselves stay pure.
    """

    def __init__(self, max_entries: int = 10000):
        """
        Initialize suggestion cache.

        Args:
            max_entries: Maximum number of cached suggestion lists
        """
        self.max_entries = max(int(max_entries), 1)
        self._entries: "OrderedDict[Tuple[str, str, str], List[Any]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

        logger.info(f"Initialized SuggestionCache with capacity {self.max_entries}")

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, kind: str, facility: Any, candidates: Sequence[Any],
                       params: Dict[str, Hashable], compute: Callable[[], List[Any]]) -> List[Any]:
        """
        Return cached suggestions or compute and store them.

        Args:
            kind: Matching problem (``parent``, ``contact`` or ``form``)
            facility: Facility the suggestions belong to
            candidates: Candidate entities passed to the computation
            params: Additional call parameters (limits, exclusions)
            compute: Zero-argument callable producing the suggestion list

        Returns:
            Suggestion list (a fresh list object)
        """
        key = (facility.id, kind, fingerprint(facility, list(candidates), params))

        if key in self._entries:
            self.hits += 1
            self._entries.move_to_end(key)
            return list(self._entries[key])

        self.misses += 1
        result = list(compute())
        self._entries[key] = result

        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

        return list(result)

    def invalidate(self, facility_id: str) -> int:
        """
        Drop every cached entry for one facility.

        Args:
            facility_id: Facility identifier

        Returns:
            Number of entries removed
        """
        stale = [key for key in self._entries if key[0] == facility_id]
        for key in stale:
            del self._entries[key]

        if stale:
            logger.debug(f"Invalidated {len(stale)} cached suggestion lists for {facility_id}")
        return len(stale)

    def clear(self):
        """Drop all cached entries and reset counters."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, float]:
        """
        Get cache statistics.

        Returns:
            Dictionary with size, hits, misses and hit rate
        """
        lookups = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }
