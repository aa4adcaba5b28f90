"""
Match result records produced by the matching engine.

All scores are integers in the range 0-100.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class ParentMatch:
    """Suggested parent organization for a facility."""

    parent_id: str
    parent_name: str
    confidence: int
    name_score: int
    zip_score: int
    city_score: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContactMatch:
    """Suggested contact person for a facility."""

    contact_id: str
    contact_name: str
    contact_email: str
    confidence: int
    domain_score: int
    note_score: int
    city_score: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FormMatch:
    """Suggested external form record for a facility."""

    form_id: str
    designation: str
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
