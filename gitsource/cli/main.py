"""gitsource CLI"""

import sys
from functools import wraps
from typing import Optional

import click

from gitsource import __version__
from gitsource.errors import GitError
from gitsource.git.repository import GitRef, GitRepository, git
from gitsource.handles import Secret, UnixSocket

from .cache import cache
from .debug import add_debug_option
from .utils.logging import logger


def auth_options(func):
    """Options selecting the credentials of a remote."""

    @click.option(
        "--token-env",
        metavar="VAR",
        help="Environment variable holding an HTTP token.",
    )
    @click.option(
        "--header-env",
        metavar="VAR",
        help="Environment variable holding a raw Authorization header.",
    )
    @click.option(
        "--ssh-auth-sock",
        type=click.Path(),
        envvar="SSH_AUTH_SOCK",
        help="SSH agent socket (defaults to $SSH_AUTH_SOCK).",
    )
    @click.option(
        "--ssh-known-hosts",
        help="known_hosts entries used to verify the SSH host key.",
    )
    @wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def selector_options(func):
    """Options selecting one ref; without any, HEAD is used."""

    @click.option("--head", "use_head", is_flag=True, help="The default branch.")
    @click.option("--branch", help="A branch name.")
    @click.option("--tag", help="A tag name.")
    @click.option("--commit", help="A full commit id.")
    @click.option("--ref", help="A full ref name, e.g. refs/pull/1/head.")
    @wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def _repository(
    url: str,
    token_env: Optional[str],
    header_env: Optional[str],
    ssh_auth_sock: Optional[str],
    ssh_known_hosts: Optional[str],
) -> GitRepository:
    repo = git(url)
    if repo.location.is_ssh:
        if ssh_auth_sock:
            repo = repo.with_ssh_auth(UnixSocket(ssh_auth_sock), ssh_known_hosts)
        return repo
    if header_env:
        repo = repo.with_auth_header(Secret.from_env(header_env))
    elif token_env:
        repo = repo.with_auth_token(Secret.from_env(token_env))
    return repo


def _select(repo: GitRepository, use_head, branch, tag, commit, ref) -> GitRef:
    given = [
        value
        for value in (use_head or None, branch, tag, commit, ref)
        if value is not None
    ]
    if len(given) > 1:
        raise click.UsageError(
            "Use only one of --head, --branch, --tag, --commit, --ref"
        )
    if branch is not None:
        return repo.branch(branch)
    if tag is not None:
        return repo.tag(tag)
    if commit is not None:
        return repo.commit(commit)
    if ref is not None:
        return repo.ref(ref)
    return repo.head()


def _fail(error: Exception):
    logger.error(str(error))
    sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="gitsource")
@click.pass_context
def cli(ctx):
    """
    Resolve and check out git repositories as cacheable inputs.
    """
    ctx.ensure_object(dict)


@click.command()
@click.argument("url")
@click.option(
    "--pattern",
    "-p",
    "patterns",
    multiple=True,
    help="Only list tags matching a pattern (v*, sdk/go/v*, refs/tags/v*).",
)
@auth_options
def tags(url, patterns, token_env, header_env, ssh_auth_sock, ssh_known_hosts):
    """List the tags of a repository."""
    try:
        repo = _repository(url, token_env, header_env, ssh_auth_sock, ssh_known_hosts)
        names = repo.tags(list(patterns) or None)
    except (GitError, ValueError) as e:
        _fail(e)
    for name in names:
        click.echo(name)


@click.command()
@click.argument("url")
@selector_options
@auth_options
def resolve(url, use_head, branch, tag, commit, ref, **auth):
    """Print the commit a ref resolves to."""
    try:
        repo = _repository(url, **auth)
        sha = _select(repo, use_head, branch, tag, commit, ref).commit()
    except (GitError, ValueError) as e:
        _fail(e)
    click.echo(sha)


@click.command()
@click.argument("url")
@click.argument("dest", type=click.Path(file_okay=False), required=False)
@selector_options
@click.option(
    "--discard-git-dir",
    is_flag=True,
    default=False,
    help="Remove the .git directory from the checkout.",
)
@auth_options
def checkout(url, dest, use_head, branch, tag, commit, ref, discard_git_dir, **auth):
    """Check out a ref to DEST, or to the tree cache when DEST is omitted."""
    try:
        repo = _repository(url, **auth)
        directory = _select(repo, use_head, branch, tag, commit, ref).tree(
            discard_git_dir=discard_git_dir, dest=dest
        )
    except (GitError, ValueError) as e:
        _fail(e)
    logger.debug(f"Digest {directory.digest}")
    click.echo(str(directory.path))


@click.command()
@click.argument("url")
@selector_options
@click.option(
    "--discard-git-dir",
    is_flag=True,
    default=False,
    help="Digest of the checkout without a .git directory.",
)
@auth_options
def digest(url, use_head, branch, tag, commit, ref, discard_git_dir, **auth):
    """Print the digest of the checkout of a ref."""
    try:
        repo = _repository(url, **auth)
        value = _select(repo, use_head, branch, tag, commit, ref).digest(
            discard_git_dir=discard_git_dir
        )
    except (GitError, ValueError) as e:
        _fail(e)
    click.echo(value)


cli.add_command(add_debug_option(tags))
cli.add_command(add_debug_option(resolve))
cli.add_command(add_debug_option(checkout))
cli.add_command(add_debug_option(digest))
cli.add_command(add_debug_option(cache))

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
