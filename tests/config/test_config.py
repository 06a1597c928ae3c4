"""
Unit tests for the ConfigAccessor class and the configuration helpers.
"""

import os
import pytest
import tempfile
from pathlib import Path

from gitsource.config import (
    ConfigAccessor,
    config_dir,
    get_cache_root,
    get_default_timeout,
    get_git_cache_dir,
    get_git_executable,
    get_trees_dir,
)


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing."""
    with tempfile.NamedTemporaryFile(mode="w+", delete=False) as f:
        f.write("""
[dirs]
cache = /srv/gitsource-cache

[git]
timeout = 120
        """)
        temp_path = f.name

    yield Path(temp_path)

    os.unlink(temp_path)


@pytest.mark.short
def test_config_accessor_get_existing(temp_config_file):
    config = ConfigAccessor(temp_config_file)

    assert config.get("dirs", "cache") == "/srv/gitsource-cache"
    assert config.get("git", "timeout") == "120"


@pytest.mark.short
def test_config_accessor_get_missing_with_default(temp_config_file):
    config = ConfigAccessor(temp_config_file)

    assert config.get("git", "executable") is None
    assert config.get("git", "executable", "git") == "git"
    assert config.get("missing", "key", "fallback") == "fallback"


@pytest.mark.short
def test_config_accessor_nonexistent_file(tmp_path):
    config = ConfigAccessor(tmp_path / "nonexistent.cfg")

    assert config.get("dirs", "cache") is None
    assert config.get("git", "timeout", "60") == "60"


@pytest.mark.short
def test_config_accessor_set(temp_config_file):
    config = ConfigAccessor(temp_config_file)
    config.set("git", "timeout", "30")
    config.set("git", "executable", "/usr/bin/git")

    assert config.get("git", "timeout") == "30"
    assert config.get("git", "executable") == "/usr/bin/git"
    assert config.get("dirs", "cache") == "/srv/gitsource-cache"


@pytest.mark.short
def test_config_dir_name():
    assert config_dir.name == "gitsource"


@pytest.mark.short
def test_cache_dirs(isolated_config, tmp_path):
    assert get_cache_root() == tmp_path / "cache"
    assert get_git_cache_dir() == tmp_path / "cache" / "repos"
    assert get_trees_dir() == tmp_path / "cache" / "trees"
    assert get_git_cache_dir().is_dir()
    assert get_trees_dir().is_dir()


@pytest.mark.short
@pytest.mark.parametrize(
    "value,expected", [("", None), ("60", 60.0), ("2.5", 2.5), ("0", None), ("-1", None)]
)
def test_default_timeout(isolated_config, value, expected):
    isolated_config.set("git", "timeout", value)
    assert get_default_timeout() == expected


@pytest.mark.short
def test_default_timeout_unset(isolated_config):
    assert get_default_timeout() is None


@pytest.mark.short
def test_default_timeout_invalid(isolated_config):
    isolated_config.set("git", "timeout", "soon")
    with pytest.raises(ValueError):
        get_default_timeout()


@pytest.mark.short
def test_git_executable(isolated_config):
    assert get_git_executable() is None
    isolated_config.set("git", "executable", "/usr/local/bin/git")
    assert get_git_executable() == "/usr/local/bin/git"
