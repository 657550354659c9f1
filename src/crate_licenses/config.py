"""Loading of the license policy configuration.

The policy lives in a TOML file, ``licenses.toml`` by default::

    accepted = ["MIT", "Apache-2.0"]
    confidence-threshold = 0.8

``accepted`` is required. An empty list is valid and accepts nothing.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from crate_licenses.corpus.matcher import DEFAULT_CONFIDENCE_THRESHOLD
from crate_licenses.models import AcceptedPolicy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "licenses.toml"

DEFAULT_CONFIG = """\
# Licenses that dependencies are allowed to use, as SPDX identifiers.
accepted = [
    "Apache-2.0",
    "MIT",
]

# Minimum similarity for a LICENSE file to be recognized, between 0 and 1.
# confidence-threshold = 0.8
"""


class ConfigError(ValueError):
    """Raised when the policy configuration is missing or invalid."""


@dataclass(frozen=True)
class PolicyConfig:
    """Loaded policy configuration.

    Attributes:
        policy: Accepted licenses.
        confidence_threshold: Minimum matcher confidence for license files.
    """

    policy: AcceptedPolicy = field(default_factory=AcceptedPolicy)
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD


def parse_config(data: dict[str, Any], source: str = "<config>") -> PolicyConfig:
    """Validate decoded TOML and build a PolicyConfig.

    Args:
        data: Decoded TOML document.
        source: Name of the document, used in error messages.

    Raises:
        ConfigError: If the document does not follow the schema.
    """
    if "accepted" not in data:
        raise ConfigError(f"{source}: missing field 'accepted'")

    accepted = data["accepted"]
    if not isinstance(accepted, list) or not all(isinstance(a, str) for a in accepted):
        raise ConfigError(f"{source}: 'accepted' must be an array of strings")

    threshold = data.get("confidence-threshold", DEFAULT_CONFIDENCE_THRESHOLD)
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigError(f"{source}: 'confidence-threshold' must be a number")
    if not 0.0 < threshold <= 1.0:
        raise ConfigError(
            f"{source}: 'confidence-threshold' must be in (0, 1], got {threshold}"
        )

    return PolicyConfig(
        policy=AcceptedPolicy.of(accepted), confidence_threshold=float(threshold)
    )


def load_config(path: Path) -> PolicyConfig:
    """Load a policy configuration file.

    Args:
        path: Path to the TOML file.

    Returns:
        The loaded configuration.

    Raises:
        ConfigError: If the file cannot be read or is invalid.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {path}: {e}") from e

    config = parse_config(data, source=str(path))
    logger.debug(
        "Loaded %d accepted licenses from %s", len(config.policy), path
    )
    return config


def find_config(manifest_dir: Path, explicit: Optional[Path] = None) -> PolicyConfig:
    """Locate and load the configuration for a manifest directory.

    Args:
        manifest_dir: Directory of the scanned manifest.
        explicit: Configuration path given by the user, if any.

    Returns:
        The loaded configuration, or the default one when no file is found
        and none was requested explicitly.

    Raises:
        ConfigError: If an explicit path does not exist or a file is invalid.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"config file {explicit} does not exist")
        return load_config(explicit)

    candidate = manifest_dir / CONFIG_FILENAME
    if candidate.is_file():
        return load_config(candidate)

    logger.warning(
        "no '%s' found, falling back to default configuration", CONFIG_FILENAME
    )
    return PolicyConfig()
