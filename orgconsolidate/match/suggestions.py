"""
Dataset-level suggestion service for OrgConsolidate.

Selects the right candidates for each facility, runs the match engine
through an optional cache and implements the bulk operations used during
review: suggestions for every facility and threshold-based
auto-assignment proposals.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import pandas as pd

from ..models.entities import ContactPerson, ExternalFormRecord, Organization
from ..models.results import ContactMatch, FormMatch, ParentMatch
from .cache import SuggestionCache
from .engine import MatchEngine

logger = logging.getLogger(__name__)


class SuggestionService:
    """
    Produces per-facility suggestion lists over a whole dataset.

    Never mutates the entities it is given; assignment proposals are
    returned to the caller, who decides whether to apply them.
    """

    def __init__(self, engine: Optional[MatchEngine] = None,
                 cache: Optional[SuggestionCache] = None):
        """
        Initialize suggestion service.

        Args:
            engine: Match engine (a default engine is created if omitted)
            cache: Optional memoization layer
        """
        self.engine = engine or MatchEngine()
        self.cache = cache

        logger.info(f"Initialized SuggestionService (cache {'enabled' if cache else 'disabled'})")

    def _cached(self, kind, facility, candidates, params, compute):
        if self.cache is None:
            return compute()
        return self.cache.get_or_compute(kind, facility, candidates, params, compute)

    def parent_suggestions(self, facility: Organization,
                           organizations: Sequence[Organization],
                           limit: Optional[int] = None) -> List[ParentMatch]:
        """
        Suggest parent organizations for one facility.

        The facility's current parent is left out of the candidates.

        Args:
            facility: Facility-type organization
            organizations: All organizations of the dataset
            limit: Maximum number of suggestions

        Returns:
            Ranked parent matches
        """
        if limit is None:
            limit = self.engine.parent_config.get("limit", 3)

        candidates = [
            org for org in organizations
            if org.is_parent and org.id != facility.parent_id and org.id != facility.id
        ]

        return self._cached(
            "parent", facility, candidates, {"limit": limit},
            lambda: self.engine.compute_parent_matches(facility, candidates, limit),
        )

    def contact_suggestions(self, facility: Organization,
                            contacts: Sequence[ContactPerson]) -> List[ContactMatch]:
        """
        Suggest contact persons for one facility.

        Contacts already linked to the facility are excluded.

        Args:
            facility: Facility-type organization
            contacts: All contact persons

        Returns:
            Ranked contact matches
        """
        excluded = sorted(set(facility.contact_ids))

        return self._cached(
            "contact", facility, contacts, {"excluded": excluded},
            lambda: self.engine.compute_contact_matches(facility, contacts, excluded),
        )

    def form_suggestions(self, facility: Organization,
                         organizations: Sequence[Organization],
                         form_records: Sequence[ExternalFormRecord],
                         limit: Optional[int] = None) -> List[FormMatch]:
        """
        Suggest external form records for one facility.

        Records linked to any facility, this one included, are not offered
        again since a record belongs to at most one facility.

        Args:
            facility: Facility-type organization
            organizations: All organizations of the dataset
            form_records: All external form records
            limit: Maximum number of suggestions

        Returns:
            Ranked form matches
        """
        if limit is None:
            limit = self.engine.form_config.get("limit", 5)

        linked = build_form_links(organizations)
        candidates = [record for record in form_records if record.id not in linked]

        return self._cached(
            "form", facility, candidates, {"limit": limit},
            lambda: self.engine.compute_form_matches(facility, candidates, limit),
        )

    def generate_all_parent_matches(self, organizations: Sequence[Organization],
                                    limit: Optional[int] = None) -> Dict[str, List[ParentMatch]]:
        """
        Compute parent suggestions for every facility.

        Args:
            organizations: All organizations of the dataset
            limit: Maximum number of suggestions per facility

        Returns:
            Mapping of facility id to ranked parent matches
        """
        match_map = {}
        for facility in organizations:
            if facility.is_facility:
                match_map[facility.id] = self.parent_suggestions(facility, organizations, limit)

        logger.info(f"Generated parent suggestions for {len(match_map)} facilities")
        return match_map

    def generate_all_contact_matches(self, organizations: Sequence[Organization],
                                     contacts: Sequence[ContactPerson]) -> Dict[str, List[ContactMatch]]:
        """
        Compute contact suggestions for every facility.

        Args:
            organizations: All organizations of the dataset
            contacts: All contact persons

        Returns:
            Mapping of facility id to ranked contact matches
        """
        match_map = {}
        for facility in organizations:
            if facility.is_facility:
                match_map[facility.id] = self.contact_suggestions(facility, contacts)

        logger.info(f"Generated contact suggestions for {len(match_map)} facilities")
        return match_map

    def generate_all_form_matches(self, organizations: Sequence[Organization],
                                  form_records: Sequence[ExternalFormRecord],
                                  limit: Optional[int] = None) -> Dict[str, List[FormMatch]]:
        """
        Compute form record suggestions for every facility.

        Args:
            organizations: All organizations of the dataset
            form_records: All external form records
            limit: Maximum number of suggestions per facility

        Returns:
            Mapping of facility id to ranked form matches
        """
        match_map = {}
        for facility in organizations:
            if facility.is_facility:
                match_map[facility.id] = self.form_suggestions(facility, organizations, form_records, limit)

        logger.info(f"Generated form suggestions for {len(match_map)} facilities")
        return match_map

    def auto_assign_parents(self, organizations: Sequence[Organization],
                            threshold: Optional[int] = None) -> Dict[str, ParentMatch]:
        """
        Propose a parent for every unassigned facility whose best match is
        confident enough.

        Args:
            organizations: All organizations of the dataset
            threshold: Minimum confidence (defaults to
                ``parent.auto_assign_threshold``)

        Returns:
            Mapping of facility id to the accepted parent match
        """
        if threshold is None:
            threshold = self.engine.parent_config.get("auto_assign_threshold", 70)

        proposals = {}
        for facility in organizations:
            if not facility.is_facility or facility.parent_id:
                continue

            matches = self.parent_suggestions(facility, organizations, limit=1)
            if matches and matches[0].confidence >= threshold:
                proposals[facility.id] = matches[0]

        logger.info(f"Auto-assignment proposed parents for {len(proposals)} facilities "
                    f"(threshold {threshold})")
        return proposals

    def auto_assign_forms(self, organizations: Sequence[Organization],
                          form_records: Sequence[ExternalFormRecord],
                          threshold: Optional[int] = None) -> Dict[str, Tuple[str, FormMatch]]:
        """
        Propose form record links for facilities, one facility per record.

        Facilities are visited in input order. A facility takes the best
        record that clears the threshold and has not been taken by an
        earlier facility in this run.

        Args:
            organizations: All organizations of the dataset
            form_records: All external form records
            threshold: Minimum confidence (defaults to
                ``form.auto_assign_threshold``)

        Returns:
            Mapping of form record id to the facility id and match, as
            ``{form_id: (facility_id, FormMatch)}``
        """
        if threshold is None:
            threshold = self.engine.form_config.get("auto_assign_threshold", 70)

        taken = dict(build_form_links(organizations))
        proposals = {}

        for facility in organizations:
            if not facility.is_facility:
                continue

            candidates = [record for record in form_records if record.id not in taken]
            matches = self.engine.compute_form_matches(facility, candidates, limit=1)
            if matches and matches[0].confidence >= threshold:
                best = matches[0]
                taken[best.form_id] = facility.id
                proposals[best.form_id] = (facility.id, best)

        logger.info(f"Auto-assignment proposed {len(proposals)} form record links "
                    f"(threshold {threshold})")
        return proposals


def build_form_links(organizations: Sequence[Organization]) -> Dict[str, str]:
    """
    Map each linked form record id to the facility that holds it.

    Args:
        organizations: All organizations of the dataset

    Returns:
        Mapping of form record id to facility id (first holder wins)
    """
    links = {}
    for org in organizations:
        for form_id in org.form_record_ids:
            links.setdefault(form_id, org.id)
    return links


def suggestions_to_frame(suggestions: Mapping[str, Sequence],
                         engine: Optional[MatchEngine] = None) -> pd.DataFrame:
    """
    Flatten a facility -> suggestions mapping into a DataFrame.

    Args:
        suggestions: Mapping of facility id to ranked match records
        engine: Engine used to label confidence bands

    Returns:
        DataFrame with one row per suggestion, including ``facility_id``,
        ``rank`` and ``band`` columns
    """
    engine = engine or MatchEngine()

    rows = []
    for facility_id, matches in suggestions.items():
        for rank, match in enumerate(matches, start=1):
            rows.append({
                "facility_id": facility_id,
                "rank": rank,
                **match.to_dict(),
                "band": engine.confidence_band(match.confidence),
            })

    return pd.DataFrame(rows, columns=None if rows else ["facility_id", "rank", "confidence", "band"])


def get_suggestion_statistics(suggestions_df: pd.DataFrame) -> Dict[str, any]:
    """
    Calculate statistics for a flattened suggestion table.

    ``band_distribution`` counts every suggestion row per band;
    ``top_band_distribution`` counts only the best (rank 1) suggestion of
    each facility.

    Args:
        suggestions_df: DataFrame from ``suggestions_to_frame``

    Returns:
        Dictionary with suggestion statistics
    """
    if suggestions_df.empty or "confidence" not in suggestions_df.columns:
        return {
            "total_suggestions": 0,
            "facilities_with_suggestions": 0,
            "band_distribution": {},
            "top_band_distribution": {},
        }

    scores = suggestions_df["confidence"]
    top = suggestions_df[suggestions_df["rank"] == 1]

    return {
        "total_suggestions": len(suggestions_df),
        "facilities_with_suggestions": suggestions_df["facility_id"].nunique(),
        "band_distribution": suggestions_df["band"].value_counts().to_dict(),
        "top_band_distribution": top["band"].value_counts().to_dict(),
        "score_statistics": {
            "mean_score": float(scores.mean()),
            "median_score": float(scores.median()),
            "min_score": int(scores.min()),
            "max_score": int(scores.max()),
        },
    }
