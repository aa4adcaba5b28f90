"""
Main pipeline orchestrator for OrgConsolidate.

Coordinates the batch suggestion run from CSV ingestion through validation,
entity conversion, parent/contact/form matching, auto-assignment proposals
and result export.
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import pandas as pd

from ..ingestion.csv_loader import (
    detect_columns,
    frame_to_contacts,
    frame_to_form_records,
    frame_to_organizations,
    read_csv_file,
)
from ..ingestion.schema_validator import validate_import_table
from ..match.cache import SuggestionCache
from ..match.engine import MatchEngine
from ..match.suggestions import SuggestionService, get_suggestion_statistics, suggestions_to_frame
from ..normalize.config import DEFAULT_CONFIG_PATH, load_matching_config, validate_matching_config
from ..reporting.stats import get_progress_report

logger = logging.getLogger(__name__)


class SuggestionPipeline:
    """
    Batch pipeline producing assignment suggestions for an imported dataset.

    Coordinates all components with per-stage timing and logging. Stage
    failures are logged and re-raised.
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self.config = load_matching_config(config_path)

        if not validate_matching_config(self.config):
            raise ValueError(f"Invalid matching configuration: {config_path}")

        self.engine = MatchEngine(self.config)
        self.cache = SuggestionCache(self.config.get("cache", {}).get("max_entries", 10000))
        self.service = SuggestionService(self.engine, self.cache)

        # Pipeline state
        self.pipeline_start_time = None
        self.stage_times = {}
        self.stage_durations = {}

        logger.info("Initialized OrgConsolidate pipeline")

    def _start_stage_timer(self, stage_name: str):
        """Start timing for a pipeline stage."""
        self.stage_times[stage_name] = time.time()
        logger.info(f"Starting stage: {stage_name}")

    def _end_stage_timer(self, stage_name: str):
        """End timing for a pipeline stage."""
        if stage_name in self.stage_times:
            duration = time.time() - self.stage_times[stage_name]
            self.stage_durations[stage_name] = duration
            logger.info(f"Completed stage: {stage_name} in {duration:.2f} seconds")

    def _load_table(self, input_path: str, kind: str) -> Tuple[pd.DataFrame, Dict[str, str], Dict]:
        df = read_csv_file(input_path)
        mapping = detect_columns(list(df.columns), kind, self.config.get("ingestion"))
        cleaned_df, summary = validate_import_table(df, mapping, kind, self.config.get("validation"))
        return cleaned_df, mapping, summary

    def ingest_data(self, organizations_path: str,
                    contacts_path: Optional[str] = None,
                    forms_path: Optional[str] = None) -> Dict[str, List]:
        """
        Load and validate the import files and convert them into entities.

        Args:
            organizations_path: Organization CSV
            contacts_path: Contact CSV (optional)
            forms_path: External form record CSV (optional)

        Returns:
            Dictionary with ``organizations``, ``contacts``, ``form_records``
            and per-file ``validation`` summaries
        """
        self._start_stage_timer("data_ingestion")

        try:
            dataset = {"organizations": [], "contacts": [], "form_records": [], "validation": {}}

            df, mapping, summary = self._load_table(organizations_path, "organization")
            dataset["organizations"] = frame_to_organizations(df, mapping)
            dataset["validation"]["organization"] = summary

            if contacts_path:
                df, mapping, summary = self._load_table(contacts_path, "contact")
                dataset["contacts"] = frame_to_contacts(df, mapping)
                dataset["validation"]["contact"] = summary

            if forms_path:
                df, mapping, summary = self._load_table(forms_path, "form")
                dataset["form_records"] = frame_to_form_records(df, mapping)
                dataset["validation"]["form"] = summary

            logger.info(f"Ingested {len(dataset['organizations'])} organizations, "
                        f"{len(dataset['contacts'])} contacts, "
                        f"{len(dataset['form_records'])} form records")

            self._end_stage_timer("data_ingestion")
            return dataset

        except Exception as e:
            logger.error(f"Data ingestion failed: {e}")
            raise

    def compute_suggestions(self, dataset: Dict[str, List]) -> Dict[str, pd.DataFrame]:
        """
        Compute suggestion tables for every facility.

        Args:
            dataset: Output of ``ingest_data``

        Returns:
            Dictionary with ``parent``, ``contact`` and ``form`` DataFrames
        """
        self._start_stage_timer("suggestion_generation")

        try:
            organizations = dataset["organizations"]

            parent_map = self.service.generate_all_parent_matches(organizations)
            contact_map = self.service.generate_all_contact_matches(organizations, dataset["contacts"])
            form_map = self.service.generate_all_form_matches(organizations, dataset["form_records"])

            tables = {
                "parent": suggestions_to_frame(parent_map, self.engine),
                "contact": suggestions_to_frame(contact_map, self.engine),
                "form": suggestions_to_frame(form_map, self.engine),
            }

            self._end_stage_timer("suggestion_generation")
            return tables

        except Exception as e:
            logger.error(f"Suggestion generation failed: {e}")
            raise

    def propose_assignments(self, dataset: Dict[str, List]) -> pd.DataFrame:
        """
        Collect threshold-based auto-assignment proposals.

        Args:
            dataset: Output of ``ingest_data``

        Returns:
            DataFrame with one row per proposed parent or form record link
        """
        self._start_stage_timer("auto_assignment")

        try:
            organizations = dataset["organizations"]
            rows = []

            for facility_id, match in self.service.auto_assign_parents(organizations).items():
                rows.append({
                    "facility_id": facility_id,
                    "link_type": "parent",
                    "target_id": match.parent_id,
                    "target_name": match.parent_name,
                    "confidence": match.confidence,
                })

            form_proposals = self.service.auto_assign_forms(organizations, dataset["form_records"])
            for form_id, (facility_id, match) in form_proposals.items():
                rows.append({
                    "facility_id": facility_id,
                    "link_type": "form",
                    "target_id": form_id,
                    "target_name": match.designation,
                    "confidence": match.confidence,
                })

            proposals_df = pd.DataFrame(
                rows, columns=["facility_id", "link_type", "target_id", "target_name", "confidence"]
            )

            self._end_stage_timer("auto_assignment")
            return proposals_df

        except Exception as e:
            logger.error(f"Auto-assignment failed: {e}")
            raise

    def generate_report(self, dataset: Dict[str, List], tables: Dict[str, pd.DataFrame],
                        proposals_df: pd.DataFrame) -> Dict[str, any]:
        """
        Generate pipeline report.

        Args:
            dataset: Output of ``ingest_data``
            tables: Output of ``compute_suggestions``
            proposals_df: Output of ``propose_assignments``

        Returns:
            Report dictionary
        """
        report = {
            "pipeline_execution": {
                "start_time": self.pipeline_start_time,
                "end_time": datetime.now(),
                "stage_durations": dict(self.stage_durations),
                "total_duration": time.time() - self.pipeline_start_time if self.pipeline_start_time else 0
            },
            "data_processing": {
                "organizations": len(dataset["organizations"]),
                "contacts": len(dataset["contacts"]),
                "form_records": len(dataset["form_records"]),
                "validation": dataset["validation"],
            },
            "progress": get_progress_report(dataset["organizations"]),
            "suggestions": {kind: get_suggestion_statistics(df) for kind, df in tables.items()},
            "auto_assignments": len(proposals_df),
            "cache": self.cache.stats(),
        }

        logger.info("Pipeline report generated")
        return report

    def run_pipeline(self, organizations_path: str,
                     contacts_path: Optional[str] = None,
                     forms_path: Optional[str] = None,
                     output_path: Optional[str] = None) -> Dict[str, any]:
        """
        Run the complete suggestion pipeline.

        Args:
            organizations_path: Organization CSV
            contacts_path: Contact CSV (optional)
            forms_path: External form record CSV (optional)
            output_path: Directory for result files (optional)

        Returns:
            Pipeline execution report
        """
        self.pipeline_start_time = time.time()
        logger.info(f"Starting OrgConsolidate pipeline for {organizations_path}")

        try:
            # 1. Ingestion and validation
            dataset = self.ingest_data(organizations_path, contacts_path, forms_path)

            # 2. Suggestions
            tables = self.compute_suggestions(dataset)

            # 3. Auto-assignment proposals
            proposals_df = self.propose_assignments(dataset)

            # 4. Report
            report = self.generate_report(dataset, tables, proposals_df)

            # 5. Save results if output path specified
            if output_path:
                self._save_results(tables, proposals_df, output_path)

            total_duration = time.time() - self.pipeline_start_time
            logger.info(f"Pipeline completed successfully in {total_duration:.2f} seconds")

            return report

        except Exception as e:
            logger.error(f"Pipeline failed: {e}")
            raise

    def _save_results(self, tables: Dict[str, pd.DataFrame], proposals_df: pd.DataFrame,
                      output_path: str):
        """Save pipeline results to specified path."""
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        tables["parent"].to_csv(output_dir / "parent_suggestions.csv", index=False)
        tables["contact"].to_csv(output_dir / "contact_suggestions.csv", index=False)
        tables["form"].to_csv(output_dir / "form_suggestions.csv", index=False)
        proposals_df.to_csv(output_dir / "auto_assignments.csv", index=False)

        logger.info(f"Results saved to {output_path}")


def main():
    """Main entry point for the OrgConsolidate suggestion pipeline."""
    parser = argparse.ArgumentParser(description="OrgConsolidate Suggestion Pipeline")
    parser.add_argument("--organizations", required=True, help="Organization CSV path")
    parser.add_argument("--contacts", help="Contact person CSV path")
    parser.add_argument("--forms", help="External form record CSV path")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--output", help="Output directory path")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    # Ensure log directory exists
    Path("logs").mkdir(exist_ok=True)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("logs/orgconsolidate.log")
        ]
    )

    try:
        pipeline = SuggestionPipeline(args.config)
        report = pipeline.run_pipeline(
            organizations_path=args.organizations,
            contacts_path=args.contacts,
            forms_path=args.forms,
            output_path=args.output
        )

        # Print summary
        assignment = report["progress"]["assignment"]
        print("\n" + "="*50)
        print("SUGGESTION RUN SUMMARY")
        print("="*50)
        print(f"Organizations: {report['data_processing']['organizations']:,}")
        print(f"Contacts: {report['data_processing']['contacts']:,}")
        print(f"Form Records: {report['data_processing']['form_records']:,}")
        print(f"Facilities Assigned: {assignment['assigned']:,} / {assignment['total']:,}")
        print(f"Auto-Assignment Proposals: {report['auto_assignments']:,}")
        print(f"Total Duration: {report['pipeline_execution']['total_duration']:.2f} seconds")
        print("="*50)

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
