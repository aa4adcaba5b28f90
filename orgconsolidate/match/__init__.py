"""
Matching engine for OrgConsolidate.

Implements string similarity scoring and the three suggestion problems:
facility to parent organization, contact to facility and external form
record to facility.
"""

from .engine import (
    MatchEngine,
    compute_contact_matches,
    compute_form_matches,
    compute_parent_matches,
)
from .similarity import StringSimilarity, similarity

__all__ = [
    "MatchEngine",
    "StringSimilarity",
    "compute_contact_matches",
    "compute_form_matches",
    "compute_parent_matches",
    "similarity",
]
