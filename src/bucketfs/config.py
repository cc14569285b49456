"""CLI configuration: bucket aliases loaded from YAML."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from .errors import BucketConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "BUCKETFS_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "bucketfs" / "config.yaml"


@dataclass
class BucketfsConfig:
    """Named bucket URLs, e.g. ``{"data": "s3://my-data?region=eu-west-1"}``."""

    aliases: Dict[str, str] = field(default_factory=dict)
    default_encoding: Optional[str] = None

    def expand(self, target: str) -> str:
        """Return the URL for an alias, or the target itself if it is a URL."""
        if "://" in target:
            return target
        try:
            return self.aliases[target]
        except KeyError:
            raise BucketConfigError(
                f"'{target}' is neither a bucket URL nor a configured alias"
            ) from None


def config_path(explicit: Optional[Path] = None) -> Path:
    """Resolve config location: explicit > $BUCKETFS_CONFIG > default."""
    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> BucketfsConfig:
    """
    Load CLI configuration.

    A missing file yields the defaults; a malformed one is an error.

    Args:
        path: Explicit config file, overrides environment and default

    Raises:
        BucketConfigError: If the file is not valid YAML or has the wrong shape
    """
    cfg_path = config_path(path)
    if not cfg_path.exists():
        logger.debug("No config at %s, using defaults", cfg_path)
        return BucketfsConfig()

    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise BucketConfigError(f"Invalid YAML in {cfg_path}: {e}") from e

    if not isinstance(data, dict):
        raise BucketConfigError(f"Expected a mapping at top level of {cfg_path}")
    aliases = data.get("aliases") or {}
    if not isinstance(aliases, dict):
        raise BucketConfigError(f"'aliases' in {cfg_path} must be a mapping")

    return BucketfsConfig(
        aliases={str(k): str(v) for k, v in aliases.items()},
        default_encoding=data.get("default_encoding"),
    )
