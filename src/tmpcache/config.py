"""Cache configuration management."""

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

from tmpcache.storage import DEFAULT_SUFFIX
from tmpcache.ttl import TTLExpression


@dataclass
class CacheConfig:
    """Configuration for a FileCache.

    Attributes:
        folder: Existing, writable directory for cache files. None means the
            operating system's temporary directory.
        default_ttl: TTL applied when save() gets none (one hour)
        suffix: Extension appended to every cache filename
    """

    folder: Optional[Path] = None
    default_ttl: TTLExpression = "1 hour"
    suffix: str = DEFAULT_SUFFIX

    def __post_init__(self):
        """Ensure folder is an expanded Path object."""
        if self.folder is not None:
            self.folder = Path(self.folder).expanduser()

    @classmethod
    def load(cls, config_path: Union[str, Path]) -> "CacheConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to config file

        Returns:
            CacheConfig instance (defaults if the file does not exist)
        """
        config_path = Path(config_path)
        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        return cls(**data)

    def save(self, config_path: Union[str, Path]) -> None:
        """Save configuration to a JSON file.

        Args:
            config_path: Path to config file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "folder": str(self.folder) if self.folder is not None else None,
            "default_ttl": (
                self.default_ttl.total_seconds()
                if isinstance(self.default_ttl, timedelta)
                else self.default_ttl
            ),
            "suffix": self.suffix,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)
