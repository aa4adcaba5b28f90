"""
Match engine for OrgConsolidate.

Scores facilities against candidate parent organizations, contact persons
and external form records. Every operation is a pure function of its
arguments: no I/O, no shared mutable state, no exceptions for degenerate
input.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..models.entities import ContactPerson, ExternalFormRecord, Organization
from ..models.results import ContactMatch, FormMatch, ParentMatch
from ..normalize.config import get_default_matching_config, merge_configs
from ..normalize.text_normalizer import TextNormalizer
from .similarity import StringSimilarity, round_half_up

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Computes ranked suggestion lists for facility assignments.

    Each matching problem has its own feature set, weights and confidence
    floor, all taken from the configuration. Results are sorted by
    descending confidence; candidates with equal confidence keep their
    input order.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize match engine with configuration.

        Args:
            config: Matching configuration, merged over the defaults
        """
        self.config = merge_configs(get_default_matching_config(), config or {})

        self.parent_config = self.config["parent"]
        self.contact_config = self.config["contact"]
        self.form_config = self.config["form"]
        self.bands = self.config.get("bands", {})

        self.normalizer = TextNormalizer.from_config(self.config.get("normalization", {}))
        self.scorer = StringSimilarity(self.normalizer)

        logger.info("Initialized MatchEngine")

    def similarity(self, text1: Optional[str], text2: Optional[str]) -> int:
        return self.scorer.similarity(text1, text2)

    def _zip_similarity(self, zip1: str, zip2: str) -> int:
        # Character-identical codes, empty ones included, get full credit
        if zip1 == zip2:
            return 100
        return self.similarity(zip1, zip2)

    def compute_parent_matches(self, facility: Organization,
                               parent_candidates: Sequence[Organization],
                               limit: Optional[int] = None) -> List[ParentMatch]:
        """
        Rank candidate parent organizations for a facility.

        Composite confidence weights name, postal code and city similarity
        (0.5 / 0.3 / 0.2 by default). No confidence floor is applied.

        Args:
            facility: Facility-type organization
            parent_candidates: Parent-type organizations to score
            limit: Maximum number of results (defaults to ``parent.limit``)

        Returns:
            Parent matches sorted by descending confidence
        """
        if limit is None:
            limit = self.parent_config.get("limit", 3)
        if limit <= 0 or not parent_candidates:
            return []

        weights = self.parent_config["weights"]
        facility_name = self.normalizer.normalize(facility.name)
        facility_city = self.normalizer.normalize(facility.city)

        matches = []
        for candidate in parent_candidates:
            name_score = self.scorer.similarity_normalized(
                facility_name, self.normalizer.normalize(candidate.name)
            )
            zip_score = self._zip_similarity(facility.zip_code, candidate.zip_code)
            city_score = self.scorer.similarity_normalized(
                facility_city, self.normalizer.normalize(candidate.city)
            )

            confidence = round_half_up(
                name_score * weights["name"] +
                zip_score * weights["zip"] +
                city_score * weights["city"]
            )

            matches.append(ParentMatch(
                parent_id=candidate.id,
                parent_name=candidate.name,
                confidence=confidence,
                name_score=name_score,
                zip_score=zip_score,
                city_score=city_score,
            ))

        ranked = sorted(matches, key=lambda m: -m.confidence)[:limit]
        logger.debug(f"Scored {len(matches)} parent candidates for facility {facility.id}")
        return ranked

    def _note_score(self, contact: ContactPerson, facility_name: str) -> int:
        if contact.note is None:
            return 0
        return self.scorer.similarity_normalized(self.normalizer.normalize(contact.note), facility_name)

    def _contact_confidence(self, note_score: int, domain_score: int, city_score: int) -> int:
        tiers = self.contact_config["weights"]

        if note_score > self.contact_config.get("note_strong_threshold", 60):
            weights = tiers["strong_note"]
            value = note_score * weights["note"] + domain_score * weights["domain"]
        elif note_score > 0:
            weights = tiers["weak_note"]
            value = note_score * weights["note"] + domain_score * weights["domain"]
        else:
            weights = tiers["no_note"]
            value = domain_score * weights["domain"] + city_score * weights["city"]

        return round_half_up(value)

    def compute_contact_matches(self, facility: Organization,
                                contacts: Sequence[ContactPerson],
                                excluded_ids: Iterable[str] = ()) -> List[ContactMatch]:
        """
        Rank contact persons for a facility.

        Signals, strongest first: the contact's free-text note compared with
        the facility name, the e-mail domain token compared with the
        facility name, and the domain token compared with the city. A note
        scoring above the strong threshold dominates the composite; without
        a note the domain carries the score.

        Args:
            facility: Facility-type organization
            contacts: All contact persons
            excluded_ids: Contact ids that are already assigned

        Returns:
            Contact matches above the confidence floor, sorted by
            descending confidence, capped at ``contact.max_results``
        """
        excluded = set(excluded_ids)
        facility_name = self.normalizer.normalize(facility.name)
        facility_city = self.normalizer.normalize(facility.city)

        min_confidence = self.contact_config.get("min_confidence", 20)
        max_results = self.contact_config.get("max_results", 5)

        matches = []
        for contact in contacts:
            if contact.id in excluded:
                continue

            domain = self.normalizer.normalize(self.normalizer.extract_domain_token(contact.email))
            note_score = self._note_score(contact, facility_name)
            domain_score = self.scorer.similarity_normalized(domain, facility_name)
            city_score = self.scorer.similarity_normalized(domain, facility_city)

            confidence = self._contact_confidence(note_score, domain_score, city_score)
            if confidence <= min_confidence:
                continue

            matches.append(ContactMatch(
                contact_id=contact.id,
                contact_name=contact.full_name,
                contact_email=contact.email,
                confidence=confidence,
                domain_score=domain_score,
                note_score=note_score,
                city_score=city_score,
            ))

        return sorted(matches, key=lambda m: -m.confidence)[:max(max_results, 0)]

    def compute_form_matches(self, facility: Organization,
                             form_candidates: Sequence[ExternalFormRecord],
                             limit: Optional[int] = None) -> List[FormMatch]:
        """
        Rank external form records for a facility by designation similarity.

        Args:
            facility: Facility-type organization
            form_candidates: Form records not linked to another facility
            limit: Maximum number of results (defaults to ``form.limit``)

        Returns:
            Form matches above the confidence floor, sorted by descending
            confidence
        """
        if limit is None:
            limit = self.form_config.get("limit", 5)
        if limit <= 0:
            return []

        min_confidence = self.form_config.get("min_confidence", 30)
        facility_name = self.normalizer.normalize(facility.name)

        matches = []
        for record in form_candidates:
            confidence = self.scorer.similarity_normalized(
                facility_name, self.normalizer.normalize(record.designation)
            )
            if confidence <= min_confidence:
                continue

            matches.append(FormMatch(
                form_id=record.id,
                designation=record.designation,
                confidence=confidence,
            ))

        return sorted(matches, key=lambda m: -m.confidence)[:limit]

    def confidence_band(self, confidence: int) -> str:
        """
        Classify a confidence value for display.

        Args:
            confidence: Confidence score

        Returns:
            ``"high"``, ``"medium"`` or ``"low"``
        """
        if confidence >= self.bands.get("high", 70):
            return "high"
        elif confidence >= self.bands.get("medium", 40):
            return "medium"
        else:
            return "low"


_default_engine: Optional[MatchEngine] = None


def _get_default_engine() -> MatchEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = MatchEngine()
    return _default_engine


def compute_parent_matches(facility: Organization,
                           parent_candidates: Sequence[Organization],
                           limit: int = 3) -> List[ParentMatch]:
    """
    Convenience function to rank parent organizations with default settings.

    Args:
        facility: Facility-type organization
        parent_candidates: Parent-type organizations
        limit: Maximum number of results

    Returns:
        Parent matches sorted by descending confidence
    """
    return _get_default_engine().compute_parent_matches(facility, parent_candidates, limit)


def compute_contact_matches(facility: Organization,
                            contacts: Sequence[ContactPerson],
                            excluded_ids: Iterable[str] = ()) -> List[ContactMatch]:
    """
    Convenience function to rank contact persons with default settings.

    Args:
        facility: Facility-type organization
        contacts: All contact persons
        excluded_ids: Contact ids that are already assigned

    Returns:
        Contact matches with confidence above 20, best five first
    """
    return _get_default_engine().compute_contact_matches(facility, contacts, excluded_ids)


def compute_form_matches(facility: Organization,
                         form_candidates: Sequence[ExternalFormRecord],
                         limit: int = 5) -> List[FormMatch]:
    """
    Convenience function to rank external form records with default settings.

    Args:
        facility: Facility-type organization
        form_candidates: Candidate form records
        limit: Maximum number of results

    Returns:
        Form matches with confidence above 30, sorted by descending confidence
    """
    return _get_default_engine().compute_form_matches(facility, form_candidates, limit)
