"""
CSV loader for OrgConsolidate.

Reads organization, contact and form record exports, detects which column
holds which field and converts rows into entities.
"""

import csv
import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import pandas as pd

from ..models.entities import ContactPerson, ExternalFormRecord, Organization, OrganizationType
from ..normalize.config import get_default_matching_config

logger = logging.getLogger(__name__)

RECORD_KINDS = ("organization", "contact", "form")

# Matched only when a header equals a keyword
EXACT_MATCH_FIELDS = {"id"}

ID_PREFIXES = {
    "organization": "org",
    "contact": "contact",
    "form": "form",
}


def read_csv_file(path: str) -> pd.DataFrame:
    """
    Read a CSV export into a DataFrame of strings.

    The separator is sniffed (comma or semicolon). Missing values become
    empty strings; header names and cells are stripped.

    Args:
        path: Path to CSV file

    Returns:
        DataFrame with string columns
    """
    file_path = Path(path)
    if file_path.suffix.lower() not in (".csv", ".txt"):
        raise ValueError(f"Unsupported file format: {path}")

    with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
        sample = f.read(4096)

    try:
        separator = csv.Sniffer().sniff(sample, delimiters=",;").delimiter
    except csv.Error:
        separator = ","

    df = pd.read_csv(file_path, sep=separator, dtype=str, keep_default_na=False,
                     encoding='utf-8-sig', skipinitialspace=True)
    df.columns = [str(col).strip() for col in df.columns]
    if not df.empty:
        df = df.apply(lambda col: col.str.strip())

    logger.info(f"Read {len(df)} rows from {path} (separator '{separator}')")
    return df


def detect_columns(headers: Sequence[str], kind: str,
                   config: Optional[Dict] = None) -> Dict[str, str]:
    """
    Detect which header holds which entity field.

    A header equal to a keyword wins over a header that merely contains
    one; identifier columns must match exactly. Each header is claimed
    by at most one field, in the order the fields are configured.

    Args:
        headers: CSV header names
        kind: ``organization``, ``contact`` or ``form``
        config: Ingestion configuration (defaults built in)

    Returns:
        Mapping of field name to header name for every detected field
    """
    if kind not in RECORD_KINDS:
        raise ValueError(f"Unknown record kind: {kind}")

    if config is None:
        config = get_default_matching_config()["ingestion"]
    keywords_by_field = config.get(f"{kind}_columns", {})

    lowered = [h.lower().strip() for h in headers]
    claimed = set()
    mapping = {}

    for field_name, keywords in keywords_by_field.items():
        match = None

        for index, header in enumerate(lowered):
            if index not in claimed and header in keywords:
                match = index
                break

        if match is None and field_name not in EXACT_MATCH_FIELDS:
            for index, header in enumerate(lowered):
                if index not in claimed and any(kw in header for kw in keywords):
                    match = index
                    break

        if match is not None:
            claimed.add(match)
            mapping[field_name] = headers[match]

    logger.debug(f"Detected {kind} columns: {mapping}")
    return mapping


def _generate_id(kind: str) -> str:
    return f"{ID_PREFIXES[kind]}-{uuid.uuid4().hex[:12]}"


def _value(row: pd.Series, mapping: Dict[str, str], field_name: str) -> str:
    column = mapping.get(field_name)
    if not column or column not in row.index:
        return ""
    value = row[column]
    return "" if pd.isna(value) else str(value).strip()


def _optional(value: str) -> Optional[str]:
    return value if value else None


def frame_to_organizations(df: pd.DataFrame, mapping: Dict[str, str]) -> List[Organization]:
    """
    Convert organization rows into entities.

    Args:
        df: Organization DataFrame
        mapping: Field to column mapping

    Returns:
        List of organizations
    """
    organizations = []
    for _, row in df.iterrows():
        organizations.append(Organization(
            id=_value(row, mapping, "id") or _generate_id("organization"),
            name=_value(row, mapping, "name"),
            street=_value(row, mapping, "street"),
            zip_code=_value(row, mapping, "zip_code"),
            city=_value(row, mapping, "city"),
            org_type=OrganizationType.parse(_value(row, mapping, "org_type")),
            parent_id=_optional(_value(row, mapping, "parent_id")),
        ))

    logger.info(f"Converted {len(organizations)} organization rows")
    return organizations


def frame_to_contacts(df: pd.DataFrame, mapping: Dict[str, str]) -> List[ContactPerson]:
    """
    Convert contact rows into entities.

    Args:
        df: Contact DataFrame
        mapping: Field to column mapping

    Returns:
        List of contact persons
    """
    contacts = []
    for _, row in df.iterrows():
        contacts.append(ContactPerson(
            id=_value(row, mapping, "id") or _generate_id("contact"),
            first_name=_value(row, mapping, "first_name"),
            last_name=_value(row, mapping, "last_name"),
            email=_value(row, mapping, "email").lower(),
            note=_optional(_value(row, mapping, "note")),
            department=_optional(_value(row, mapping, "department")),
        ))

    logger.info(f"Converted {len(contacts)} contact rows")
    return contacts


def frame_to_form_records(df: pd.DataFrame, mapping: Dict[str, str]) -> List[ExternalFormRecord]:
    """
    Convert external form record rows into entities.

    Args:
        df: Form record DataFrame
        mapping: Field to column mapping

    Returns:
        List of external form records
    """
    records = []
    for _, row in df.iterrows():
        records.append(ExternalFormRecord(
            id=_generate_id("form"),
            external_code=_value(row, mapping, "external_code"),
            designation=_value(row, mapping, "designation"),
            url=_optional(_value(row, mapping, "url")),
        ))

    logger.info(f"Converted {len(records)} form record rows")
    return records
