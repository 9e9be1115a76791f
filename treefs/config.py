"""
Configuration management for treefs.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/treefs/config.json
- Fallback: ~/.treefs/config.json
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class ShellConfig:
    """Interactive shell options."""
    history_file: Optional[str] = None
    color: bool = True
    confirm_removals: bool = True


@dataclass
class HostConfig:
    """Mirroring of folder/file changes onto a real directory."""
    mirror_enabled: bool = False
    mirror_root: Optional[str] = None


@dataclass
class PersistenceConfig:
    """Snapshot defaults."""
    default_snapshot: Optional[str] = None
    compress: bool = False


@dataclass
class ResolverConfig:
    """Path resolution settings."""
    max_symlink_hops: int = 8


@dataclass
class TreeFSConfig:
    """Main treefs configuration."""
    shell: ShellConfig = field(default_factory=ShellConfig)
    host: HostConfig = field(default_factory=HostConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "shell": asdict(self.shell),
            "host": asdict(self.host),
            "persistence": asdict(self.persistence),
            "resolver": asdict(self.resolver),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TreeFSConfig':
        """Create from dictionary."""
        return cls(
            shell=ShellConfig(**data.get("shell", {})),
            host=HostConfig(**data.get("host", {})),
            persistence=PersistenceConfig(**data.get("persistence", {})),
            resolver=ResolverConfig(**data.get("resolver", {})),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/treefs/config.json
    2. Fallback: ~/.treefs/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "treefs"
    else:
        config_dir = Path.home() / ".treefs"

    return config_dir / "config.json"


def load_config() -> TreeFSConfig:
    """
    Load configuration from file.

    Returns:
        TreeFSConfig instance with loaded values or defaults
    """
    config_path = get_config_path()

    if not config_path.exists():
        return TreeFSConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return TreeFSConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Using default configuration")
        return TreeFSConfig()


def save_config(config: TreeFSConfig) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def update_config(
    # Shell settings
    shell_history_file: Optional[str] = None,
    shell_color: Optional[bool] = None,
    shell_confirm_removals: Optional[bool] = None,
    # Host settings
    host_mirror_enabled: Optional[bool] = None,
    host_mirror_root: Optional[str] = None,
    # Persistence settings
    persistence_default_snapshot: Optional[str] = None,
    persistence_compress: Optional[bool] = None,
    # Resolver settings
    resolver_max_symlink_hops: Optional[int] = None,
) -> TreeFSConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config = load_config()

    if shell_history_file is not None:
        config.shell.history_file = shell_history_file
    if shell_color is not None:
        config.shell.color = shell_color
    if shell_confirm_removals is not None:
        config.shell.confirm_removals = shell_confirm_removals

    if host_mirror_enabled is not None:
        config.host.mirror_enabled = host_mirror_enabled
    if host_mirror_root is not None:
        config.host.mirror_root = host_mirror_root

    if persistence_default_snapshot is not None:
        config.persistence.default_snapshot = persistence_default_snapshot
    if persistence_compress is not None:
        config.persistence.compress = persistence_compress

    if resolver_max_symlink_hops is not None:
        config.resolver.max_symlink_hops = resolver_max_symlink_hops

    save_config(config)
    return config
