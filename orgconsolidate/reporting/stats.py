"""
Progress statistics for OrgConsolidate.

Counts how far a dataset has been classified, validated, assigned and
linked.
"""

import logging
from typing import Dict, Sequence

from ..models.entities import Organization, OrganizationType

logger = logging.getLogger(__name__)


def get_classification_stats(organizations: Sequence[Organization]) -> Dict[str, int]:
    """
    Count organizations per classification.

    Args:
        organizations: All organizations of the dataset

    Returns:
        Dictionary with parent, facility, inactive, unclassified and total
        counts
    """
    return {
        "parents": sum(1 for o in organizations if o.org_type is OrganizationType.PARENT),
        "facilities": sum(1 for o in organizations if o.org_type is OrganizationType.FACILITY),
        "inactive": sum(1 for o in organizations if o.org_type is OrganizationType.INACTIVE),
        "unclassified": sum(1 for o in organizations if o.org_type is None),
        "total": len(organizations),
    }


def get_validation_stats(organizations: Sequence[Organization],
                         org_type: OrganizationType) -> Dict[str, int]:
    """Count validated organizations of one classification."""
    filtered = [o for o in organizations if o.org_type is org_type]
    return {
        "validated": sum(1 for o in filtered if o.is_validated),
        "total": len(filtered),
    }


def get_assignment_stats(organizations: Sequence[Organization]) -> Dict[str, int]:
    """Count facilities that have a parent organization."""
    facilities = [o for o in organizations if o.is_facility]
    return {
        "assigned": sum(1 for o in facilities if o.parent_id),
        "total": len(facilities),
    }


def get_link_stats(organizations: Sequence[Organization]) -> Dict[str, int]:
    """Count facilities with at least one contact and one form record."""
    facilities = [o for o in organizations if o.is_facility]
    return {
        "with_contacts": sum(1 for o in facilities if o.contact_ids),
        "with_form_records": sum(1 for o in facilities if o.form_record_ids),
        "total": len(facilities),
    }


def get_progress_report(organizations: Sequence[Organization]) -> Dict[str, Dict[str, int]]:
    """
    Collect all progress statistics.

    Args:
        organizations: All organizations of the dataset

    Returns:
        Dictionary of statistic groups
    """
    report = {
        "classification": get_classification_stats(organizations),
        "parent_validation": get_validation_stats(organizations, OrganizationType.PARENT),
        "facility_validation": get_validation_stats(organizations, OrganizationType.FACILITY),
        "assignment": get_assignment_stats(organizations),
        "links": get_link_stats(organizations),
    }

    logger.info(f"Progress: {report['assignment']['assigned']}/{report['assignment']['total']} "
                f"facilities assigned")
    return report
