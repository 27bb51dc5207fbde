# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from pathlib import Path
from typing import Dict, List, Union

# Third-Party Imports
import yaml

# Local Imports
from decontam_eval import constants

# ==================================== FUNCTIONS ===================================== #

def resolve_relative_paths(config: Dict, config_dir: Path) -> Dict:
    """Converts any relative paths in the configuration to absolute paths based on
    the directory of the config file."""
    for key, value in config.items():
        if isinstance(value, str):
            # Check if the value is a relative path
            if value.startswith("./") or value.startswith("../"):
                # Convert relative path to absolute path
                config[key] = (config_dir / value).resolve()
        elif isinstance(value, dict):
            # Recursively handle nested dictionaries
            config[key] = resolve_relative_paths(value, config_dir)
        elif isinstance(value, list):
            config[key] = [
                resolve_relative_paths(item, config_dir)
                if isinstance(item, dict) else item
                for item in value
            ]
    return config


def get_config(
    config_path: Union[str, Path] = constants.DEFAULT_CONFIG
) -> Dict:
    # Load the YAML configuration file
    with open(config_path, "r") as file:
        config = yaml.safe_load(file) or {}

    # Resolve any relative paths in the config
    config_dir = Path(config_path).resolve().parent
    config = resolve_relative_paths(config, config_dir)

    return config


def get_method_entries(config: Dict) -> List[Dict]:
    """Return the configured detection methods in their declared order.

    Raises:
        ValueError: If an entry has no label or two entries share a label.
    """
    entries = config.get("methods", []) or []
    labels = []
    for i, entry in enumerate(entries):
        label = entry.get("label") if isinstance(entry, dict) else None
        if not label:
            raise ValueError(f"Method entry {i} has no 'label': {entry}")
        if label in labels:
            raise ValueError(f"Duplicate method label in config: '{label}'")
        labels.append(label)
    return entries
