"""Configuration file support for Beanhunter.

Loads .beanhunter.yml from the project root (or specified path) and provides
path exclusions, the inline suppression keyword, and extra library
annotation stubs for the Java front-end.

Config format example:

    exclude_paths:
      - "target/"
      - "**/generated/*.java"

    suppression_keyword: "nosec"

    annotation_stubs:
      com.acme.validation.Iban: ["javax.validation.Constraint"]
      com.acme.web.ApiController: ["org.springframework.stereotype.Controller"]

Annotation stubs describe library annotations whose sources are not scanned:
each maps an annotation FQN to the FQNs of the annotations it is itself
annotated with.
"""

import fnmatch
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

CONFIG_NAMES = ('.beanhunter.yml', '.beanhunter.yaml')


@dataclass
class BeanhunterConfig:
    """Parsed configuration from .beanhunter.yml."""
    exclude_paths: List[str] = field(default_factory=list)
    suppression_keyword: str = "nosec"
    annotation_stubs: Dict[str, List[str]] = field(default_factory=dict)

    def should_exclude(self, file_path: str) -> bool:
        """Check if a file path matches any exclusion pattern."""
        for pattern in self.exclude_paths:
            if fnmatch.fnmatch(file_path, pattern):
                return True
            # Also check if any path component matches
            if pattern.endswith('/') and pattern.rstrip('/') in file_path.split(os.sep):
                return True
        return False


def load_config(target_path: str, config_path: str = None) -> Optional[BeanhunterConfig]:
    """Load Beanhunter configuration.

    Args:
        target_path: The scan target path (used to find .beanhunter.yml)
        config_path: Explicit config path (overrides auto-discovery)

    Returns:
        BeanhunterConfig if found, None otherwise.

    Raises:
        yaml.YAMLError: if the config file is not valid YAML.
    """
    if config_path:
        if os.path.isfile(config_path):
            return _parse_config(config_path)
        return None

    # Walk up from target_path to find .beanhunter.yml
    search_dir = os.path.abspath(target_path)
    if os.path.isfile(search_dir):
        search_dir = os.path.dirname(search_dir)

    while True:
        for name in CONFIG_NAMES:
            candidate = os.path.join(search_dir, name)
            if os.path.isfile(candidate):
                return _parse_config(candidate)
        parent = os.path.dirname(search_dir)
        if parent == search_dir:
            break  # Reached filesystem root
        search_dir = parent

    return None


def _parse_config(config_path: str) -> BeanhunterConfig:
    """Parse a .beanhunter.yml file into a BeanhunterConfig."""
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    config = BeanhunterConfig()
    if not isinstance(data, dict):
        return config

    exclude = data.get('exclude_paths', [])
    if isinstance(exclude, list):
        config.exclude_paths = [str(p) for p in exclude]

    stubs = data.get('annotation_stubs', {})
    if isinstance(stubs, dict):
        for fqn, meta in stubs.items():
            if isinstance(meta, list):
                config.annotation_stubs[str(fqn)] = [str(m) for m in meta]

    config.suppression_keyword = str(data.get('suppression_keyword', 'nosec'))

    return config
