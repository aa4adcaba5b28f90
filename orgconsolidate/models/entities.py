"""
Entity definitions for OrgConsolidate.

Organizations, contact persons and external form records as they come out of
the import step. The matching engine only reads these; it never mutates or
retains them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class OrganizationType(str, Enum):
    """Classification tag assigned to an organization during review."""

    PARENT = "traeger"
    FACILITY = "einrichtung"
    INACTIVE = "inaktiv"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["OrganizationType"]:
        """
        Parse a classification label from an import file.

        Accepts the stored values as well as English aliases. Unknown or
        empty labels mean the organization is unclassified.

        Args:
            value: Raw label

        Returns:
            Matching OrganizationType or None
        """
        if value is None:
            return None

        label = str(value).strip().lower()
        aliases = {
            "traeger": cls.PARENT,
            "träger": cls.PARENT,
            "parent": cls.PARENT,
            "einrichtung": cls.FACILITY,
            "facility": cls.FACILITY,
            "inaktiv": cls.INACTIVE,
            "inactive": cls.INACTIVE,
        }
        return aliases.get(label)


@dataclass(frozen=True)
class Organization:
    """
    A parent organization, facility, inactive or unclassified record.

    A facility may reference one parent-type organization through
    ``parent_id``. Only one level of nesting exists.
    """

    id: str
    name: str = ""
    zip_code: str = ""
    city: str = ""
    org_type: Optional[OrganizationType] = None
    parent_id: Optional[str] = None
    street: str = ""
    is_validated: bool = False
    contact_ids: Tuple[str, ...] = field(default_factory=tuple)
    form_record_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_parent(self) -> bool:
        return self.org_type is OrganizationType.PARENT

    @property
    def is_facility(self) -> bool:
        return self.org_type is OrganizationType.FACILITY


@dataclass(frozen=True)
class ContactPerson:
    """A contact person; ``note`` often holds the organization name."""

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    note: Optional[str] = None
    department: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(frozen=True)
class ExternalFormRecord:
    """A third-party form funnel, linkable to at most one facility."""

    id: str
    external_code: str = ""
    designation: str = ""
    url: Optional[str] = None
