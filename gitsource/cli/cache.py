"""CLI commands for the object cache"""

import click

from gitsource.cli.utils.logging import logger
from gitsource.config import get_git_cache_dir, get_trees_dir
from gitsource.git.cache import describe_cache


@click.group(name="cache")
def cache():
    """Inspect the repository cache."""
    pass


@cache.command("describe")
def describe():
    """List cached repositories.

    Example:

      gitsource cache describe
    """
    cache_dir = get_git_cache_dir()
    entries = describe_cache(cache_dir)
    if not entries:
        logger.info(f"No repositories cached in {cache_dir}")
        return

    logger.info(f"{len(entries)} cached repositories in {cache_dir}")
    for entry in entries:
        logger.info(f"  {entry['url']}  ({entry['pinned']} pinned commits)")
        logger.debug(f"    {entry['repo_path']}")
    logger.info(f"Checkouts: {get_trees_dir()}")
