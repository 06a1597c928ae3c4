"""Tests for materializing trees."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from gitsource.config import get_trees_dir
from gitsource.git.checkout import Directory, _checkout, materialize
from gitsource.git.digest import digest_hex
from gitsource.git.location import RepositoryLocation
from gitsource.git.resolver import Branch, Commit, Tag, TreeOptions, resolve
from gitsource.git.transport import open_repository
from tests.git_repos import requires_git

pytestmark = requires_git


def _resolve(path, selector):
    handle = open_repository(RepositoryLocation.parse(str(path)))
    return resolve(handle, selector)


class TestMaterialize:
    @pytest.mark.short
    def test_keeps_git_dir_by_default(self, sample_repo, git_repos):
        tree = materialize(_resolve(sample_repo.path, Branch("main")))
        assert tree.has_git_dir()
        assert git_repos.rev_parse(tree.path, "HEAD") == sample_repo.main
        assert git_repos.current_branch(tree.path) is None

    @pytest.mark.short
    def test_discard_git_dir(self, sample_repo):
        tree = materialize(
            _resolve(sample_repo.path, Branch("main")), TreeOptions(discard_git_dir=True)
        )
        assert not tree.has_git_dir()
        assert tree.entries() == ["README.md", "src/"]

    @pytest.mark.short
    def test_tag_is_detached(self, sample_repo, git_repos):
        tree = materialize(_resolve(sample_repo.path, Tag("v0.1.0")))
        assert git_repos.current_branch(tree.path) is None
        assert git_repos.rev_parse(tree.path, "HEAD") == sample_repo.first
        assert tree.entries() == [".git/", "README.md"]

    @pytest.mark.short
    def test_shared_tree_independent_of_selector(self, sample_repo, git_repos):
        tagged = materialize(_resolve(sample_repo.path, Tag("v0.1.0")))
        branch = materialize(_resolve(sample_repo.path, Branch("feature")))
        assert branch.path == tagged.path
        assert git_repos.current_branch(branch.path) is None

    @pytest.mark.short
    def test_branch_checkout_to_destination_is_detached(self, sample_repo, git_repos, tmp_path):
        tree = materialize(_resolve(sample_repo.path, Branch("feature")), dest=tmp_path / "out")
        assert git_repos.current_branch(tree.path) is None
        assert git_repos.rev_parse(tree.path, "HEAD") == sample_repo.first

    @pytest.mark.short
    def test_unadvertised_commit(self, sample_repo):
        tree = materialize(_resolve(sample_repo.path, Commit(sample_repo.pr)))
        assert tree.file("PR.md").contents() == "pull request\n"

    @pytest.mark.short
    def test_bare_source_never_keeps_git_dir(self, sample_repo, git_repos):
        bare = git_repos.bare(sample_repo.path, "bare.git")
        resolved = _resolve(bare, Branch("main"))
        tree = materialize(resolved, TreeOptions(discard_git_dir=False))
        assert not tree.has_git_dir()
        assert tree.file("src/main.py").contents() == "print('hello')\n"

    @pytest.mark.short
    def test_stored_under_digest(self, sample_repo):
        tree = materialize(_resolve(sample_repo.path, Branch("main")))
        assert tree.path == get_trees_dir() / digest_hex(tree.digest)

    @pytest.mark.short
    def test_reused_for_same_digest(self, sample_repo):
        first = materialize(_resolve(sample_repo.path, Branch("main")))
        with patch("gitsource.git.checkout._checkout") as checkout:
            second = materialize(_resolve(sample_repo.path, Tag("v0.2.0")))
        checkout.assert_not_called()
        assert second.path == first.path
        assert second.digest == first.digest

    @pytest.mark.short
    def test_failed_checkout_leaves_no_tree(self, sample_repo):
        resolved = _resolve(sample_repo.path, Branch("main"))
        with patch("gitsource.git.checkout._checkout", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                materialize(resolved)
        leftovers = [p for p in get_trees_dir().iterdir() if not p.name.endswith(".lock")]
        assert leftovers == []

    @pytest.mark.short
    def test_explicit_destination(self, sample_repo, tmp_path):
        dest = tmp_path / "out"
        tree = materialize(_resolve(sample_repo.path, Branch("main")), dest=dest)
        assert tree.path == dest
        assert (dest / "README.md").exists()

    @pytest.mark.short
    def test_destination_must_be_empty(self, sample_repo, tmp_path):
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "existing").write_text("x")
        with pytest.raises(ValueError):
            materialize(_resolve(sample_repo.path, Branch("main")), dest=dest)

    @pytest.mark.short
    def test_remote_checkout_records_origin(self, fake_remote, sample_repo, git_repos):
        resolved = resolve(open_repository(fake_remote), Branch("main"))
        tree = materialize(resolved)
        assert git_repos.rev_parse(tree.path, "HEAD") == sample_repo.main
        assert git_repos.git(tree.path, "remote", "get-url", "origin") == (
            "https://example.com/org/repo"
        )


class TestDirectory:
    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / "tree"
        (root / "docs").mkdir(parents=True)
        (root / "docs" / "index.md").write_text("# Docs\n")
        (root / "README.md").write_text("hello\n")
        return Directory(root)

    @pytest.mark.short
    def test_entries(self, tree):
        assert tree.entries() == ["README.md", "docs/"]
        assert tree.directory("docs").entries() == ["index.md"]

    @pytest.mark.short
    def test_file(self, tree):
        readme = tree.file("README.md")
        assert readme.name == "README.md"
        assert readme.contents() == "hello\n"
        assert tree.file("docs/index.md").read_bytes() == b"# Docs\n"

    @pytest.mark.short
    def test_missing(self, tree):
        with pytest.raises(FileNotFoundError):
            tree.file("missing.txt")
        with pytest.raises(NotADirectoryError):
            tree.directory("README.md")

    @pytest.mark.short
    def test_paths_stay_inside_tree(self, tree):
        with pytest.raises(ValueError):
            tree.file("../outside.txt")


class TestDetachedResolvedRef:
    @pytest.mark.short
    def test_materialize_requires_handle(self, sample_repo):
        resolved = replace(_resolve(sample_repo.path, Branch("main")), handle=None)
        with pytest.raises(ValueError, match="detached from its repository"):
            materialize(resolved)

    @pytest.mark.short
    def test_checkout_requires_handle(self, sample_repo, tmp_path):
        resolved = replace(_resolve(sample_repo.path, Branch("main")), handle=None)
        with pytest.raises(ValueError, match="detached from its repository"):
            _checkout(resolved, tmp_path / "out", False, None)
        assert not (tmp_path / "out").exists()
