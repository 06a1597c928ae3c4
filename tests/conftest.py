import io

import pytest
import logging

from dataclasses import dataclass
from pathlib import Path

from gitsource.config import ConfigAccessor
from gitsource.git.location import LocationKind, RepositoryLocation
from tests.git_repos import GitRepoFactory


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("gitsource")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> ConfigAccessor:
    """Point the object cache and tree cache at a per-test directory."""
    config = ConfigAccessor(tmp_path / "gitsource.cfg")
    config.set("dirs", "cache", str(tmp_path / "cache"))
    monkeypatch.setattr("gitsource.config.config", config)
    return config


# git fixtures


@dataclass
class SampleRepo:
    path: Path
    first: str
    main: str
    pr: str
    annotated_tag: str


@pytest.fixture
def git_repos(tmp_path) -> GitRepoFactory:
    return GitRepoFactory(tmp_path / "repos")


@pytest.fixture
def sample_repo(git_repos) -> SampleRepo:
    """
    A worktree on main with:
    - v0.1.0 (lightweight) on the first commit, feature branch there too
    - v0.2.0 (annotated) and sdk/go/v0.2.0 (lightweight) on main
    - refs/pull/1/head: a commit no branch or tag reaches
    """
    path = git_repos.create("sample")
    first = git_repos.rev_parse(path, "HEAD")
    git_repos.tag(path, "v0.1.0")
    git_repos.branch(path, "feature")
    main = git_repos.commit(path, {"src/main.py": "print('hello')\n"}, "Add main")
    git_repos.tag(path, "v0.2.0", annotated=True)
    git_repos.tag(path, "sdk/go/v0.2.0")
    pr = git_repos.hidden_commit(path, "refs/pull/1/head", {"PR.md": "pull request\n"})
    return SampleRepo(
        path=path,
        first=first,
        main=main,
        pr=pr,
        annotated_tag=git_repos.rev_parse(path, "refs/tags/v0.2.0"),
    )


@pytest.fixture
def fake_remote(git_repos, sample_repo) -> RepositoryLocation:
    """
    A remote location served from a local mirror.

    Its identity is https://example.com/org/repo while git talks to the
    mirror on disk, so the remote code paths run without network access.
    """
    mirror = git_repos.mirror(sample_repo.path, "remote.git")
    return RepositoryLocation(
        kind=LocationKind.HTTPS,
        url=str(mirror),
        host="example.com",
        path="/org/repo",
    )
