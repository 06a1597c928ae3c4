"""Configuration for the local object cache, checkout trees and git transport"""

import configparser
import os
import platform
from typing import Optional, Any

from pathlib import Path

APP_NAME = "gitsource"

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")
xdg_cache_home = os.environ.get("XDG_CACHE_HOME") or os.path.join(_home, ".cache")


default_cfg = {
    "dirs": {"cache": os.path.join(xdg_cache_home, APP_NAME)},
    "git": {"timeout": "", "executable": ""},
}

if platform.system() == "Darwin":
    # macOS
    config_dir = Path("~/Library/Application Support/gitsource").expanduser()
else:
    # Linux or others
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


def get_config_file():
    return config_dir / f"{APP_NAME}.cfg"


def init_dirs():
    """Initialize the configuration directory.

    Fails gracefully if the directory cannot be created (e.g., read-only filesystem).
    """
    import logging

    logger = logging.getLogger(__name__)

    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as e:
        logger.warning(
            f"Could not create config directory {config_dir}: {e}. "
            "Using in-memory configuration only."
        )


class ConfigAccessor:
    """
    A dict-like accessor for configuration files.

    Missing sections or keys are handled gracefully.

    Usage:
        config = ConfigAccessor()
        value = config.get('git', 'timeout', default='300')
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize a ConfigAccessor with an optional config file path.

        Args:
            config_path: Path to the configuration file. If None, uses the default path.
        """
        if config_path is None:
            self.config_path = get_config_file()
        else:
            self.config_path = config_path

        init_dirs()

        self.config = configparser.ConfigParser()
        if self.config_path.exists():
            self.config.read(self.config_path)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value from the specified section and key.

        Args:
            section: The configuration section
            key: The configuration key
            default: Value to return if the section or key doesn't exist

        Returns:
            The configuration value if it exists, otherwise the default value
        """
        try:
            return self.config[section][key]
        except (KeyError, configparser.NoSectionError, configparser.NoOptionError):
            return default

    def set(self, section: str, key: str, value: str) -> None:
        """
        Set a configuration value.

        Args:
            section: The configuration section
            key: The configuration key
            value: The value to set
        """
        if not self.config.has_section(section):
            self.config.add_section(section)

        self.config[section][key] = value


# Create a global config accessor instance
config = ConfigAccessor()


def get_cache_root() -> Path:
    """
    Get the configured root of the gitsource cache.

    Returns:
        Path to the cache root (defaults to ~/.cache/gitsource)
    """
    cache_dir_str = config.get("dirs", "cache", default_cfg["dirs"]["cache"])
    return Path(cache_dir_str).expanduser()


def get_git_cache_dir() -> Path:
    """
    Get the directory holding one bare object cache per remote repository.

    Layout is Go-style: <cache>/repos/github.com/org/repo
    """
    git_cache_dir = get_cache_root() / "repos"
    git_cache_dir.mkdir(parents=True, exist_ok=True)
    return git_cache_dir


def get_trees_dir() -> Path:
    """
    Get the directory where materialized checkouts are stored, keyed by digest.
    """
    trees_dir = get_cache_root() / "trees"
    trees_dir.mkdir(parents=True, exist_ok=True)
    return trees_dir


def get_default_timeout() -> Optional[float]:
    """
    Get the default deadline, in seconds, for one repository operation.

    The deadline is shared by every git process the operation starts: a
    tree() call opens, fetches and checks out within the same budget.

    Returns:
        The configured timeout, or None when git operations may run unbounded
    """
    value = config.get("git", "timeout", default_cfg["git"]["timeout"])
    if value is None or str(value).strip() == "":
        return None
    try:
        timeout = float(value)
    except ValueError:
        raise ValueError(f"Invalid [git] timeout in {config.config_path}: {value!r}")
    return timeout if timeout > 0 else None


def get_git_executable() -> Optional[str]:
    """Path of the git binary, if configured. GitPython falls back to PATH."""
    value = config.get("git", "executable", default_cfg["git"]["executable"])
    return value or None
