"""
Configuration utilities for OrgConsolidate.

Provides configuration loading and validation for normalization, matching
weights, thresholds and ingestion column detection.
"""

import copy
import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/orgconsolidate.yaml"


def load_matching_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load matching configuration from YAML file.

    Values found in the file are merged over the defaults, so a partial
    file only needs to name what it changes.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    defaults = get_default_matching_config()

    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file {config_path} not found, using defaults")
            return defaults

        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            logger.error(f"Configuration file {config_path} does not contain a mapping, using defaults")
            return defaults

        logger.info(f"Loaded matching configuration from {config_path}")
        return merge_configs(defaults, config)

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return defaults


def get_default_matching_config() -> Dict[str, Any]:
    """
    Get default matching configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "normalization": {
            "transliteration": {
                "ä": "a",
                "ö": "o",
                "ü": "u",
                "ß": "ss"
            }
        },
        "parent": {
            "weights": {
                "name": 0.5,
                "zip": 0.3,
                "city": 0.2
            },
            "limit": 3,
            "auto_assign_threshold": 70
        },
        "contact": {
            "note_strong_threshold": 60,
            "weights": {
                "strong_note": {"note": 0.9, "domain": 0.1},
                "weak_note": {"note": 0.7, "domain": 0.3},
                "no_note": {"domain": 0.8, "city": 0.2}
            },
            "min_confidence": 20,
            "max_results": 5
        },
        "form": {
            "min_confidence": 30,
            "limit": 5,
            "auto_assign_threshold": 70
        },
        "bands": {
            "high": 70,
            "medium": 40
        },
        "cache": {
            "max_entries": 10000
        },
        "ingestion": {
            "organization_columns": {
                "id": ["id", "kennung"],
                "name": ["name", "bezeichnung", "organisation", "firma"],
                "street": ["straße", "strasse", "street", "adresse"],
                "zip_code": ["plz", "postleitzahl", "zip"],
                "city": ["stadt", "ort", "city", "gemeinde"],
                "org_type": ["typ", "type", "klassifizierung"],
                "parent_id": ["parent", "träger", "traeger"]
            },
            "contact_columns": {
                "id": ["id"],
                "first_name": ["vorname", "firstname", "first_name", "first name"],
                "last_name": ["nachname", "lastname", "last_name", "last name"],
                "email": ["e-mail", "email", "mail"],
                "note": ["notiz", "note", "bemerkung", "kommentar"],
                "department": ["abteilung", "department"]
            },
            "form_columns": {
                "external_code": ["heyflow_id", "flow_id", "code", "id"],
                "url": ["url", "link", "adresse"],
                "designation": ["bezeichnung", "name", "titel", "description"]
            }
        }
    }


def _weights_sum_to_one(weights: Any) -> bool:
    if not isinstance(weights, dict) or not weights:
        return False
    try:
        total = sum(float(v) for v in weights.values())
    except (TypeError, ValueError):
        return False
    return abs(total - 1.0) < 1e-6


def _is_score(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 100


def validate_matching_config(config: Dict[str, Any]) -> bool:
    """
    Validate matching configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["normalization", "parent", "contact", "form"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False
        if not isinstance(config[section], dict):
            logger.error(f"Configuration section {section} must be a mapping")
            return False

    # Validate normalization configuration
    table = config["normalization"].get("transliteration", {})
    if not isinstance(table, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in table.items()):
        logger.error("normalization.transliteration must map strings to strings")
        return False

    # Validate parent configuration
    parent_config = config["parent"]
    if not _weights_sum_to_one(parent_config.get("weights", {})):
        logger.error("parent.weights must sum to 1.0")
        return False

    if not _is_score(parent_config.get("auto_assign_threshold", 70)):
        logger.error("parent.auto_assign_threshold must be a number between 0 and 100")
        return False

    # Validate contact configuration
    contact_config = config["contact"]
    tiers = contact_config.get("weights", {})
    if not isinstance(tiers, dict):
        logger.error("contact.weights must be a mapping of tiers")
        return False

    for tier, weights in tiers.items():
        if not _weights_sum_to_one(weights):
            logger.error(f"contact.weights.{tier} must sum to 1.0")
            return False

    for key in ("note_strong_threshold", "min_confidence"):
        if not _is_score(contact_config.get(key, 0)):
            logger.error(f"contact.{key} must be a number between 0 and 100")
            return False

    # Validate form configuration
    if not _is_score(config["form"].get("min_confidence", 30)):
        logger.error("form.min_confidence must be a number between 0 and 100")
        return False

    bands = config.get("bands", {})
    if not isinstance(bands, dict):
        logger.error("bands must be a mapping")
        return False

    high = bands.get("high", 70)
    medium = bands.get("medium", 40)
    if not _is_score(high) or not _is_score(medium):
        logger.error("bands.high and bands.medium must be numbers between 0 and 100")
        return False

    if medium > high:
        logger.error("bands.medium must not exceed bands.high")
        return False

    logger.info("Configuration validation passed")
    return True


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base_config)

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def save_matching_config(config: Dict[str, Any], config_path: str) -> bool:
    """
    Save matching configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2, allow_unicode=True)

        logger.info(f"Saved configuration to {config_path}")
        return True

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False
