"""
Unit tests for normalization modules.
"""

import pytest
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from orgconsolidate.normalize.config import (
    get_default_matching_config,
    load_matching_config,
    merge_configs,
    save_matching_config,
    validate_matching_config,
)
from orgconsolidate.normalize.text_normalizer import (
    TextNormalizer,
    extract_domain_token,
    normalize,
)


class TestTextNormalizer:
    """Test cases for text normalization."""

    def setup_method(self):
        """Setup test fixtures."""
        self.normalizer = TextNormalizer()

    def test_normalize_basic(self):
        """Test lower-casing and stripping of non-alphanumerics."""
        assert self.normalizer.normalize("Klinik Nord") == "kliniknord"
        assert self.normalizer.normalize("  Haus-am-See 2 ") == "hausamsee2"
        assert self.normalizer.normalize("Müller GmbH & Co. KG") == "mullergmbhcokg"

    def test_normalize_german_transliteration(self):
        """Test the German substitution table."""
        assert self.normalizer.normalize("Müller") == "muller"
        assert self.normalizer.normalize("ÄÖÜ") == "aou"
        assert self.normalizer.normalize("Straße") == "strasse"
        assert self.normalizer.normalize("Trägergesellschaft") == "tragergesellschaft"

    def test_normalize_empty_and_noise(self):
        """Test that empty, missing and pure-noise input normalize to empty."""
        assert self.normalizer.normalize("") == ""
        assert self.normalizer.normalize(None) == ""
        assert self.normalizer.normalize("!!! --- ...") == ""

    def test_other_characters_are_dropped(self):
        """Test that diacritics outside the table are removed, not folded."""
        assert self.normalizer.normalize("Café") == "caf"

    def test_custom_policy(self):
        """Test a configurable transliteration table."""
        normalizer = TextNormalizer({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})
        assert normalizer.normalize("Müller") == "mueller"
        assert normalizer.normalize("Köln") == "koeln"

    def test_from_config(self):
        """Test building a normalizer from the config section."""
        normalizer = TextNormalizer.from_config({"transliteration": {"é": "e"}})
        assert normalizer.normalize("Café") == "cafe"
        assert normalizer.normalize("Müller") == "mller"

    def test_extract_domain_token(self):
        """Test e-mail domain token extraction."""
        assert self.normalizer.extract_domain_token("Info@Klinik-Nord.de") == "klinik-nord"
        assert self.normalizer.extract_domain_token("a@localhost") == "localhost"
        assert self.normalizer.extract_domain_token("no-at-sign.de") == ""
        assert self.normalizer.extract_domain_token("") == ""
        assert self.normalizer.extract_domain_token(None) == ""

    def test_module_functions(self):
        """Test module-level helpers use the German policy."""
        assert normalize("Größe") == "grosse"
        assert extract_domain_token("x@pflege-mitte.com") == "pflege-mitte"


class TestMatchingConfig:
    """Test cases for configuration loading."""

    def setup_method(self):
        """Setup test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def test_default_config_is_valid(self):
        """Test the built-in defaults pass validation."""
        config = get_default_matching_config()
        assert validate_matching_config(config)
        assert config["parent"]["weights"] == {"name": 0.5, "zip": 0.3, "city": 0.2}
        assert config["contact"]["min_confidence"] == 20
        assert config["form"]["min_confidence"] == 30

    def test_missing_file_returns_defaults(self):
        """Test that a missing file falls back to defaults."""
        config = load_matching_config(str(Path(self.temp_dir) / "missing.yaml"))
        assert config == get_default_matching_config()

    def test_partial_file_is_merged(self):
        """Test that file values override defaults without dropping others."""
        config_path = Path(self.temp_dir) / "partial.yaml"
        config_path.write_text("form:\n  min_confidence: 45\n", encoding="utf-8")

        config = load_matching_config(str(config_path))
        assert config["form"]["min_confidence"] == 45
        assert config["form"]["limit"] == 5
        assert config["parent"]["weights"]["name"] == 0.5

    def test_broken_file_returns_defaults(self):
        """Test that unparsable YAML falls back to defaults."""
        config_path = Path(self.temp_dir) / "broken.yaml"
        config_path.write_text("parent: [unclosed\n", encoding="utf-8")

        assert load_matching_config(str(config_path)) == get_default_matching_config()

    def test_validation_rejects_bad_weights(self):
        """Test weight groups must sum to one."""
        config = merge_configs(get_default_matching_config(),
                               {"parent": {"weights": {"name": 0.9, "zip": 0.3, "city": 0.2}}})
        assert not validate_matching_config(config)

    def test_validation_rejects_bad_threshold(self):
        """Test thresholds must stay within 0-100."""
        config = merge_configs(get_default_matching_config(), {"contact": {"min_confidence": 120}})
        assert not validate_matching_config(config)

    def test_validation_rejects_malformed_values(self):
        """Test wrongly typed values fail validation instead of raising."""
        defaults = get_default_matching_config()

        assert not validate_matching_config(merge_configs(defaults, {"bands": {"high": "hoch"}}))
        assert not validate_matching_config(merge_configs(defaults, {"bands": "high"}))
        assert not validate_matching_config(merge_configs(defaults, {"parent": {"weights": [0.5, 0.5]}}))
        assert not validate_matching_config(merge_configs(defaults, {"contact": {"weights": "tiered"}}))
        assert not validate_matching_config(
            merge_configs(defaults, {"contact": {"weights": {"strong_note": 1.0}}})
        )
        assert not validate_matching_config(merge_configs(defaults, {"form": None}))

    def test_validation_rejects_inverted_bands(self):
        """Test the medium band may not lie above the high band."""
        config = merge_configs(get_default_matching_config(), {"bands": {"high": 40, "medium": 70}})
        assert not validate_matching_config(config)

    def test_malformed_file_is_rejected_by_validation(self):
        """Test a loaded file with wrongly typed values validates to False."""
        config_path = Path(self.temp_dir) / "typed.yaml"
        config_path.write_text("bands:\n  high: hoch\n  medium: mittel\n", encoding="utf-8")

        assert not validate_matching_config(load_matching_config(str(config_path)))

    def test_validation_requires_sections(self):
        """Test missing sections fail validation."""
        assert not validate_matching_config({"parent": {}})

    def test_merge_configs_does_not_mutate_base(self):
        """Test merging leaves the base untouched."""
        base = {"a": {"b": 1, "c": 2}}
        merged = merge_configs(base, {"a": {"b": 5}})
        assert merged == {"a": {"b": 5, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}

    def test_save_and_reload(self):
        """Test a saved configuration loads back unchanged."""
        config = get_default_matching_config()
        config_path = Path(self.temp_dir) / "nested" / "saved.yaml"

        assert save_matching_config(config, str(config_path))
        assert load_matching_config(str(config_path)) == config


if __name__ == "__main__":
    pytest.main([__file__])
