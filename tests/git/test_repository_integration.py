"""Integration tests against a public repository on github.com."""

import re

import pytest

from gitsource import RefNotFound, git
from tests.git_repos import requires_git

pytestmark = [requires_git, pytest.mark.integration]

DAGGER = "https://github.com/dagger/dagger"
SHA_RE = re.compile(r"^[0-9a-f]{40}$")


class TestDagger:
    def test_nested_tags(self):
        tags = git(DAGGER).tags(["sdk/go/v*"])
        assert tags
        assert all(tag.startswith("sdk/go/v") for tag in tags)

    def test_ref_qualified_tags_exclude_nested(self):
        tags = git(DAGGER).tags(["refs/tags/v*"])
        assert "v0.9.5" in tags
        assert not any("/" in tag for tag in tags)

    def test_head_is_main(self):
        repo = git(DAGGER)
        assert repo.head().commit() == repo.branch("main").commit()

    def test_short_form(self):
        assert git("github.com/dagger/dagger").tag("v0.9.5").commit() == git(
            DAGGER
        ).tag("v0.9.5").commit()

    def test_tag_tree(self):
        ref = git(DAGGER).tag("v0.9.5")
        assert SHA_RE.match(ref.commit())
        tree = ref.tree(discard_git_dir=True)
        assert "README.md" in tree.entries()
        assert not tree.has_git_dir()

    def test_commit_roundtrip(self):
        repo = git(DAGGER)
        sha = repo.tag("v0.9.5").commit()
        assert repo.commit(sha).commit() == sha

    def test_missing_branch(self):
        with pytest.raises(RefNotFound):
            git(DAGGER).branch("this-branch-does-not-exist").commit()
