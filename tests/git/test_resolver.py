"""Tests for resolving ref selectors."""

from unittest.mock import patch

import pytest

from gitsource.errors import RefNotFound
from gitsource.git.location import RepositoryLocation
from gitsource.git.resolver import Branch, Commit, Head, Ref, Tag, resolve
from gitsource.git.transport import open_repository
from tests.git_repos import requires_git

pytestmark = requires_git


@pytest.fixture
def handle(sample_repo):
    return open_repository(RepositoryLocation.parse(str(sample_repo.path)))


@pytest.mark.short
def test_head_is_default_branch(handle, sample_repo):
    head = resolve(handle, Head())
    assert head.sha == sample_repo.main
    assert head.sha == resolve(handle, Branch("main")).sha
    assert head.refname == "refs/heads/main"


@pytest.mark.short
def test_branch(handle, sample_repo):
    resolved = resolve(handle, Branch("feature"))
    assert resolved.sha == sample_repo.first
    assert resolved.refname == "refs/heads/feature"


@pytest.mark.short
def test_full_ref_equals_branch(handle):
    assert resolve(handle, Ref("refs/heads/main")).sha == resolve(handle, Branch("main")).sha


@pytest.mark.short
def test_ref_outside_branches_and_tags(handle, sample_repo):
    resolved = resolve(handle, Ref("refs/pull/1/head"))
    assert resolved.sha == sample_repo.pr
    assert resolved.refname == "refs/pull/1/head"


@pytest.mark.short
def test_lightweight_tag(handle, sample_repo):
    assert resolve(handle, Tag("v0.1.0")).sha == sample_repo.first


@pytest.mark.short
def test_annotated_tag_resolves_to_commit(handle, sample_repo):
    resolved = resolve(handle, Tag("v0.2.0"))
    assert resolved.sha == sample_repo.main
    assert resolved.sha != sample_repo.annotated_tag
    assert resolved.refname == "refs/tags/v0.2.0"


@pytest.mark.short
def test_nested_tag(handle, sample_repo):
    assert resolve(handle, Tag("sdk/go/v0.2.0")).sha == sample_repo.main


@pytest.mark.short
def test_tag_falls_back_to_unadvertised_commit(handle, sample_repo):
    resolved = resolve(handle, Tag(sample_repo.pr))
    assert resolved.sha == sample_repo.pr
    assert resolved.refname is None


@pytest.mark.short
def test_missing_tag_does_not_fetch_names(handle):
    with patch("gitsource.git.transport._fetch_into_cache") as fetch:
        with pytest.raises(RefNotFound):
            resolve(handle, Tag("v9.9.9"))
    fetch.assert_not_called()


@pytest.mark.short
def test_commit(handle, sample_repo):
    assert resolve(handle, Commit(sample_repo.first)).sha == sample_repo.first


@pytest.mark.short
def test_commit_uppercase(handle, sample_repo):
    assert resolve(handle, Commit(sample_repo.first.upper())).sha == sample_repo.first


@pytest.mark.short
@pytest.mark.parametrize("sha", ["deadbeef" * 5, "abc1234"])
def test_unknown_commit(handle, sha):
    with pytest.raises(RefNotFound):
        resolve(handle, Commit(sha))


@pytest.mark.short
def test_unknown_branch(handle, sample_repo):
    with pytest.raises(RefNotFound) as exc_info:
        resolve(handle, Branch("nope"))
    assert "reference branch nope not found" in str(exc_info.value)


@pytest.mark.short
def test_resolved_refs_compare_by_identity_selector_and_sha(sample_repo):
    location = RepositoryLocation.parse(str(sample_repo.path))
    first = resolve(open_repository(location), Branch("main"))
    second = resolve(open_repository(location), Branch("main"))
    assert first == second
    assert first != resolve(open_repository(location), Head())


@pytest.mark.short
def test_remote_resolution_is_lazy(fake_remote, sample_repo):
    handle = open_repository(fake_remote)
    resolved = resolve(handle, Branch("main"))
    assert resolved.sha == sample_repo.main
    assert resolved.identity == "https://example.com/org/repo"
    # Named refs come from the advertisement alone
    assert not handle.object_dir.exists()


@pytest.mark.short
def test_remote_tag_fallback_fetches_commit(fake_remote, sample_repo):
    handle = open_repository(fake_remote)
    assert resolve(handle, Tag(sample_repo.pr)).sha == sample_repo.pr
    assert handle.object_dir.exists()
