"""
Configuration loader for engine parameters.

Handles loading and validating engine configuration files.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from .models import EngineConfig

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[Path] = None) -> EngineConfig:
    """
    Load engine configuration from a JSON file.

    Args:
        config_path: Path to the configuration file. If None, the
                    defaults are used.

    Returns:
        EngineConfig object with validated configuration

    Raises:
        ValueError: If config is invalid
    """
    if config_path is None:
        return EngineConfig.default()

    config_path = Path(config_path)
    if not config_path.exists():
        logger.warning("Config file '%s' not found. Using default configuration.", config_path)
        return EngineConfig.default()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ValueError(f"Error reading config file: {e}")

    if not isinstance(data, dict):
        raise ValueError("Invalid configuration: expected a JSON object")

    try:
        config = EngineConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration: {e}")

    is_valid, error_message = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error_message}")

    return config


def create_sample_config(output_path: Path):
    """
    Create a sample configuration file.

    Args:
        output_path: Path where to save the sample config
    """
    sample_config = {
        "time_limit_ms": 2000,
        "memory_limit_mb": 256,
        "checker": "exact_match",
        "max_output_chars": 65536,
        "_comment": "This is a sample engine configuration. Adjust values as needed.",
        "_instructions": {
            "time_limit_ms": "Wall-clock limit for one test case execution (1-60000)",
            "memory_limit_mb": "Memory limit for the program in MB (Unix only, at least 16)",
            "checker": "Output comparison: exact_match, float_isclose or unordered_list_equal",
            "max_output_chars": "Captured output is truncated to this many characters"
        }
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(sample_config, f, indent=2)

    logger.info("Sample configuration created at: %s", output_path)
