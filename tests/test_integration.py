"""
Integration tests for the OrgConsolidate suggestion pipeline.
"""

import pytest
import sys
import tempfile
from pathlib import Path
import pandas as pd

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from orgconsolidate.pipeline import run_suggestions
from orgconsolidate.pipeline.run_suggestions import SuggestionPipeline


class TestPipelineIntegration:
    """Integration tests for the complete pipeline."""

    def setup_method(self):
        """Setup test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())

        self.organizations_path = self.temp_dir / "organizations.csv"
        self.organizations_path.write_text(
            "id,Name,PLZ,Ort,Typ\n"
            "p1,Sonnenblume Trägergesellschaft,10115,Berlin,traeger\n"
            "p2,Müller GmbH,99999,München,traeger\n"
            "f1,Haus am See,20095,Hamburg,einrichtung\n"
            "f2,Sonnenblume Trägergesellschaft Nord,10115,Berlin,einrichtung\n",
            encoding="utf-8",
        )

        self.forms_path = self.temp_dir / "forms.csv"
        self.forms_path.write_text(
            "Heyflow ID,URL,Bezeichnung\n"
            "hf-1,https://heyflow.app/sonnenblume,Sonnenblume Trägergesellschaft Nord\n"
            "hf-2,https://heyflow.app/see,Haus am See Anmeldung\n",
            encoding="utf-8",
        )

        self.contacts_path = self.temp_dir / "contacts.csv"
        self.contacts_path.write_text(
            "Vorname,Nachname,E-Mail,Notiz\n"
            "Anna,Schmidt,anna@gmail.com,Sonnenblume Trägergesellschaft Nord\n"
            "Ben,Meyer,ben@web.de,\n",
            encoding="utf-8",
        )

        # Missing file: built-in defaults
        self.config_path = str(self.temp_dir / "missing.yaml")

    def test_ingest_data(self):
        """Test ingestion and entity conversion."""
        pipeline = SuggestionPipeline(self.config_path)

        dataset = pipeline.ingest_data(
            str(self.organizations_path), str(self.contacts_path), str(self.forms_path)
        )

        assert [o.id for o in dataset["organizations"]] == ["p1", "p2", "f1", "f2"]
        assert dataset["organizations"][0].zip_code == "10115"
        assert len(dataset["contacts"]) == 2
        assert dataset["contacts"][1].note is None
        assert [r.external_code for r in dataset["form_records"]] == ["hf-1", "hf-2"]
        assert dataset["validation"]["organization"]["success"]

    def test_full_pipeline(self):
        """Test complete pipeline execution with result files."""
        output_dir = self.temp_dir / "output"
        pipeline = SuggestionPipeline(self.config_path)

        report = pipeline.run_pipeline(
            organizations_path=str(self.organizations_path),
            contacts_path=str(self.contacts_path),
            forms_path=str(self.forms_path),
            output_path=str(output_dir),
        )

        assert report["data_processing"]["organizations"] == 4
        assert report["progress"]["classification"]["parents"] == 2
        assert report["progress"]["classification"]["facilities"] == 2
        # f2 -> p1 parent and f2 -> hf-1 form record
        assert report["auto_assignments"] == 2
        assert "data_ingestion" in report["pipeline_execution"]["stage_durations"]

        for file_name in ("parent_suggestions.csv", "contact_suggestions.csv",
                          "form_suggestions.csv", "auto_assignments.csv"):
            assert (output_dir / file_name).exists()

        parent_df = pd.read_csv(output_dir / "parent_suggestions.csv", dtype={"facility_id": str})
        assert len(parent_df) == 4
        best = parent_df[(parent_df["facility_id"] == "f2") & (parent_df["rank"] == 1)].iloc[0]
        assert best["parent_id"] == "p1"
        assert best["confidence"] == 94
        assert best["band"] == "high"

        proposals_df = pd.read_csv(output_dir / "auto_assignments.csv")
        assert set(proposals_df["link_type"]) == {"parent", "form"}
        assert set(proposals_df["facility_id"]) == {"f2"}

        contact_df = pd.read_csv(output_dir / "contact_suggestions.csv")
        top_contact = contact_df[contact_df["facility_id"] == "f2"].iloc[0]
        assert top_contact["contact_name"] == "Anna Schmidt"
        assert top_contact["note_score"] == 100

    def test_weak_facility_is_not_auto_assigned(self):
        """Test a facility without a confident parent stays unassigned."""
        pipeline = SuggestionPipeline(self.config_path)
        dataset = pipeline.ingest_data(str(self.organizations_path))

        proposals_df = pipeline.propose_assignments(dataset)

        assert "f1" not in set(proposals_df["facility_id"])

    def test_cache_is_used_across_stages(self):
        """Test auto-assignment reuses cached parent suggestions where the inputs match."""
        pipeline = SuggestionPipeline(self.config_path)
        dataset = pipeline.ingest_data(str(self.organizations_path))

        pipeline.compute_suggestions(dataset)
        pipeline.compute_suggestions(dataset)

        assert pipeline.cache.hits > 0

    def test_invalid_config_rejected(self):
        """Test an invalid configuration stops the pipeline early."""
        config_path = self.temp_dir / "bad.yaml"
        config_path.write_text(
            "parent:\n  weights:\n    name: 0.9\n    zip: 0.3\n    city: 0.2\n",
            encoding="utf-8",
        )

        with pytest.raises(ValueError):
            SuggestionPipeline(str(config_path))

    def test_missing_name_column_fails(self):
        """Test ingestion fails when the organization name cannot be found."""
        bad_path = self.temp_dir / "bad.csv"
        bad_path.write_text("PLZ,Ort\n10115,Berlin\n", encoding="utf-8")
        pipeline = SuggestionPipeline(self.config_path)

        with pytest.raises(ValueError):
            pipeline.ingest_data(str(bad_path))

    def test_main_entry_point(self, monkeypatch):
        """Test the command line entry point."""
        output_dir = self.temp_dir / "cli-output"
        monkeypatch.chdir(self.temp_dir)
        monkeypatch.setattr(sys, "argv", [
            "orgconsolidate",
            "--organizations", str(self.organizations_path),
            "--forms", str(self.forms_path),
            "--config", self.config_path,
            "--output", str(output_dir),
        ])

        run_suggestions.main()

        assert (output_dir / "form_suggestions.csv").exists()
        assert (self.temp_dir / "logs").is_dir()


if __name__ == "__main__":
    pytest.main([__file__])
