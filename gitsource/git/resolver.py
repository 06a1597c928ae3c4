"""
Ref selectors and their resolution to commits.

A selector says which commit is wanted; resolve() turns it into a ResolvedRef
against an opened repository:

    Head()            the commit HEAD points to
    Branch(name)      refs/heads/<name>
    Tag(name)         refs/tags/<name>, annotated tags peeled; when no such tag
                      is advertised, <name> is fetched as a raw object id
                      (reaches commits only exposed under other namespaces,
                      e.g. pull request heads)
    Commit(sha)       always fetched by object id
    Ref(spec)         any fully-qualified ref, verbatim
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from gitsource.errors import RefNotFound
from gitsource.git.cancel import Cancellation
from gitsource.git.location import RepositoryLocation
from gitsource.git.transport import HEAD, RepositoryHandle, fetch_object

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Head:
    def describe(self) -> str:
        return HEAD


@dataclass(frozen=True)
class Branch:
    name: str

    def describe(self) -> str:
        return f"branch {self.name}"


@dataclass(frozen=True)
class Tag:
    name: str

    def describe(self) -> str:
        return f"tag {self.name}"


@dataclass(frozen=True)
class Commit:
    sha: str

    def describe(self) -> str:
        return f"commit {self.sha}"


@dataclass(frozen=True)
class Ref:
    spec: str

    def describe(self) -> str:
        return f"ref {self.spec}"


RefSelector = Union[Head, Branch, Tag, Commit, Ref]


@dataclass(frozen=True)
class TreeOptions:
    discard_git_dir: bool = False


@dataclass(frozen=True)
class ResolvedRef:
    """
    A selector resolved to a commit.

    Two resolved refs are equal when repository identity, selector and commit
    are; credentials and connection details do not take part.
    """

    identity: str
    selector: RefSelector
    sha: str
    # Advertised ref the commit was found under, fetched to obtain the object
    refname: Optional[str] = field(default=None, compare=False)
    handle: Optional[RepositoryHandle] = field(default=None, compare=False, repr=False)

    @property
    def location(self) -> RepositoryLocation:
        if self.handle is None:
            raise ValueError("ResolvedRef is detached from its repository")
        return self.handle.location


def resolve(
    handle: RepositoryHandle,
    selector: RefSelector,
    *,
    cancel: Optional[Cancellation] = None,
) -> ResolvedRef:
    """
    Resolve a selector against an opened repository.

    Named selectors are looked up in the advertisement only; Commit selectors,
    and Tag selectors without a matching tag, fetch the object by id.

    Raises:
        RefNotFound: nothing matches the selector
    """
    advertisement = handle.advertisement
    url = handle.location.redacted_url()

    def _resolved(sha: str, refname: Optional[str]) -> ResolvedRef:
        logger.debug(f"Resolved {selector.describe()} of {handle.location} to {sha}")
        return ResolvedRef(
            identity=handle.location.identity(),
            selector=selector,
            sha=sha,
            refname=refname,
            handle=handle,
        )

    match selector:
        case Head():
            refname = advertisement.head_target() or HEAD
            sha = advertisement.head()
        case Branch(name=name):
            refname = f"refs/heads/{name}"
            sha = advertisement.get(refname)
        case Ref(spec=spec):
            refname = spec
            sha = advertisement.get(spec)
        case Tag(name=name):
            refname = f"refs/tags/{name}"
            sha = advertisement.get(refname)
            if sha is None:
                logger.debug(f"No tag {name} in {handle.location}, trying it as an object id")
                return _resolved(fetch_object(handle, name, cancel=cancel), None)
        case Commit(sha=commit):
            return _resolved(fetch_object(handle, commit, cancel=cancel), None)
        case _:
            raise TypeError(f"Unknown ref selector: {selector!r}")

    if sha is None:
        raise RefNotFound(selector.describe(), url=url)
    return _resolved(sha, refname)
