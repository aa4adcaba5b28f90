"""
Schema validation using Great Expectations for OrgConsolidate.

Checks mapped import tables for missing required columns, empty required
values, duplicate identifiers and malformed e-mail addresses, and removes
rows that cannot be turned into usable entities.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
import pandas as pd
import great_expectations as gx

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

DEFAULT_REQUIRED_FIELDS = {
    "organization": ["name"],
    "contact": ["email"],
    "form": ["designation"],
}

NOT_NULL = "expect_column_values_to_not_be_null"
UNIQUE = "expect_column_values_to_be_unique"
MATCH_REGEX = "expect_column_values_to_match_regex"


class SchemaValidationError(ValueError):
    """Raised when an import table lacks a required column."""


def _blank_mask(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.strip() == ""


class RecordSchemaValidator:
    """
    Validates mapped import tables before entity conversion.

    Validation never touches the matching engine; it only decides which
    rows are passed on.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize validator with configuration.

        Args:
            config: Configuration dictionary with ``required_fields`` per
                record kind and an optional ``email_regex``
        """
        config = config or {}
        self.required_fields = {**DEFAULT_REQUIRED_FIELDS, **config.get("required_fields", {})}
        self.email_regex = config.get("email_regex", EMAIL_PATTERN)

        # In-memory context; no project directory is written
        self.context = gx.get_context(mode="ephemeral")
        self.data_source = self.context.data_sources.add_pandas(name="orgconsolidate_imports")
        self._batch_definitions = {}

        logger.info("Initialized RecordSchemaValidator")

    def _batch_definition(self, kind: str):
        if kind not in self._batch_definitions:
            asset = self.data_source.add_dataframe_asset(name=f"{kind}_import")
            self._batch_definitions[kind] = asset.add_batch_definition_whole_dataframe(f"{kind}_batch")
        return self._batch_definitions[kind]

    def _required_columns(self, df: pd.DataFrame, mapping: Dict[str, str], kind: str) -> List[str]:
        missing = [
            field_name for field_name in self.required_fields.get(kind, [])
            if mapping.get(field_name) not in df.columns
        ]
        if missing:
            raise SchemaValidationError(f"Missing required {kind} columns: {', '.join(missing)}")

        return [mapping[field_name] for field_name in self.required_fields.get(kind, [])]

    def create_expectations(self, df: pd.DataFrame, mapping: Dict[str, str],
                            kind: str) -> List[Tuple[str, str, Any]]:
        """
        Build the expectations for one import table.

        Args:
            df: Import DataFrame
            mapping: Field to column mapping
            kind: ``organization``, ``contact`` or ``form``

        Returns:
            List of (expectation_type, column, expectation) tuples
        """
        expectations = []

        for column in self._required_columns(df, mapping, kind):
            expectations.append((NOT_NULL, column, gx.expectations.ExpectColumnValuesToNotBeNull(column=column)))

        id_column = mapping.get("id")
        if id_column and id_column in df.columns:
            expectations.append((UNIQUE, id_column, gx.expectations.ExpectColumnValuesToBeUnique(column=id_column)))

        email_column = mapping.get("email")
        if email_column and email_column in df.columns:
            expectations.append((MATCH_REGEX, email_column, gx.expectations.ExpectColumnValuesToMatchRegex(
                column=email_column, regex=self.email_regex
            )))

        return expectations

    def validate(self, df: pd.DataFrame, mapping: Dict[str, str], kind: str) -> Dict[str, Any]:
        """
        Validate an import table.

        Blank cells count as missing values. Malformed e-mail addresses are
        reported but do not make the table fail.

        Args:
            df: Import DataFrame
            mapping: Field to column mapping
            kind: ``organization``, ``contact`` or ``form``

        Returns:
            Dictionary with validation summary

        Raises:
            SchemaValidationError: If a required column is not mapped
        """
        expectations = self.create_expectations(df, mapping, kind)

        # CSV imports carry "" instead of NaN
        prepared = df.apply(lambda col: col.where(~_blank_mask(col))) if not df.empty else df
        batch = self._batch_definition(kind).get_batch(batch_parameters={"dataframe": prepared})

        summary = {
            "kind": kind,
            "total_rows": len(df),
            "empty_required_values": 0,
            "duplicate_ids": 0,
            "invalid_emails": 0,
            "total_expectations": len(expectations),
            "successful_expectations": 0,
            "failed_expectations": 0,
            "failed_expectations_details": [],
        }
        counters = {NOT_NULL: "empty_required_values", UNIQUE: "duplicate_ids", MATCH_REGEX: "invalid_emails"}

        for expectation_type, column, expectation in expectations:
            result = batch.validate(expectation)
            if result.success:
                summary["successful_expectations"] += 1
                continue

            unexpected = int(result.result.get("unexpected_count", 0) or 0)
            summary["failed_expectations"] += 1
            summary[counters[expectation_type]] += unexpected
            summary["failed_expectations_details"].append({
                "expectation_type": expectation_type,
                "column": column,
                "unexpected_count": unexpected,
            })
            logger.warning(f"Failed expectation: {expectation_type} for column: {column}")

        summary["success"] = summary["empty_required_values"] == 0 and summary["duplicate_ids"] == 0

        if summary["invalid_emails"]:
            # Reported only; rows are kept
            logger.warning(f"{summary['invalid_emails']} {kind} rows have malformed e-mail addresses")

        logger.info(f"Validated {len(df)} {kind} rows: "
                    f"{summary['successful_expectations']}/{summary['total_expectations']} expectations passed")
        return summary

    def clean(self, df: pd.DataFrame, mapping: Dict[str, str], kind: str,
              summary: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        """
        Remove rows with empty required values and duplicate identifiers.

        Only the checks that failed in ``summary`` remove rows; duplicates
        keep their first occurrence.

        Args:
            df: Import DataFrame
            mapping: Field to column mapping
            kind: ``organization``, ``contact`` or ``form``
            summary: Result of ``validate`` (computed if omitted)

        Returns:
            Cleaned DataFrame
        """
        if summary is None:
            summary = self.validate(df, mapping, kind)

        drop_mask = pd.Series(False, index=df.index)
        for failed in summary["failed_expectations_details"]:
            column = failed["column"]

            if failed["expectation_type"] == NOT_NULL:
                drop_mask |= _blank_mask(df[column])

            elif failed["expectation_type"] == UNIQUE:
                ids = df[column].fillna("").astype(str).str.strip()
                drop_mask |= (ids != "") & ids.duplicated(keep='first')

        cleaned_df = df[~drop_mask].copy()

        removed = len(df) - len(cleaned_df)
        if removed:
            logger.info(f"Removed {removed} invalid {kind} rows")

        return cleaned_df


def validate_import_table(df: pd.DataFrame, mapping: Dict[str, str], kind: str,
                          config: Optional[Dict[str, Any]] = None) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Convenience function to validate and clean an import table.

    Args:
        df: Import DataFrame
        mapping: Field to column mapping
        kind: ``organization``, ``contact`` or ``form``
        config: Validation configuration

    Returns:
        Tuple of (cleaned_df, validation_summary)
    """
    validator = RecordSchemaValidator(config)
    summary = validator.validate(df, mapping, kind)

    if summary["success"]:
        return df, summary

    logger.warning(f"Validation found problems in {kind} data, cleaning invalid rows")
    return validator.clean(df, mapping, kind, summary), summary
