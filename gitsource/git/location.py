"""
Repository locations.

A location string is one of:

    https://github.com/org/repo(.git)      HTTPS (http:// is accepted too)
    ssh://git@github.com[:port]/org/repo   SSH, URL form
    git@github.com:org/repo.git            SSH, scp-like form
    git://host/org/repo                    git daemon protocol
    github.com/org/repo                    short form, implies HTTPS
    ., .., ./x, ../x, /abs, ~/x, file://   local paths

RepositoryLocation is immutable. Its identity() is what digests are built
from; credentials embedded in a URL never take part in it.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from gitsource.handles import ServiceHost

_SCP_RE = re.compile(r"^(?:(?P<user>[^@/:]+)@)?(?P<host>[^@/:]+):(?P<path>(?!//).+)$")

_DEFAULT_PORTS = {"https": 443, "http": 80, "ssh": 22, "git": 9418}


class LocationKind(str, Enum):
    HTTPS = "https"
    HTTP = "http"
    SSH = "ssh"
    GIT = "git"
    LOCAL = "local"


def is_local_path(url: str) -> bool:
    """
    Check if a repository URL is a local filesystem path rather than a remote URL.

    Local paths include ".", "..", absolute paths, home-relative paths and
    file:// URLs.

    Args:
        url: Repository URL or path

    Returns:
        True if this is a local filesystem path
    """
    url = url.strip()
    if url in (".", "..") or url.startswith("./") or url.startswith("../"):
        return True
    if url.startswith("/") or url.startswith("~"):
        return True
    if url.startswith("file://"):
        return True
    return False


def resolve_local_path(url: str, base_dir: Optional[Path] = None) -> Path:
    """
    Resolve a local repository URL to an absolute filesystem path.

    Args:
        url: Local path (e.g., ".", "/home/user/repo", "file:///path/to/repo")
        base_dir: Directory relative paths are resolved against. Defaults to cwd.

    Returns:
        Resolved absolute Path
    """
    if url.startswith("file://"):
        url = url[len("file://") :]
    p = Path(url).expanduser()
    if not p.is_absolute():
        base = base_dir or Path.cwd()
        p = base / p
    return p.resolve()


def _strip_repo_suffix(path: str) -> str:
    path = path.rstrip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path


@dataclass(frozen=True)
class RepositoryLocation:
    kind: LocationKind
    url: str
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    path: str = ""
    scp_like: bool = False

    @classmethod
    def parse(cls, raw: str, base_dir: Optional[Path] = None) -> "RepositoryLocation":
        """
        Parse a location string.

        Raises:
            ValueError: if the string is empty or uses an unsupported scheme
        """
        raw = raw.strip()
        if not raw:
            raise ValueError("Repository location must be non-empty")

        if is_local_path(raw):
            p = resolve_local_path(raw, base_dir)
            return cls(kind=LocationKind.LOCAL, url=str(p), path=str(p))

        if "://" in raw:
            parsed = urlparse(raw)
            scheme = parsed.scheme.lower()
            if scheme not in _DEFAULT_PORTS:
                raise ValueError(f"Unsupported repository URL scheme: {scheme}://")
            if not parsed.hostname:
                raise ValueError(f"Repository URL has no host: {raw}")
            return cls(
                kind=LocationKind(scheme),
                url=raw,
                host=parsed.hostname,
                port=parsed.port,
                user=parsed.username,
                path=parsed.path,
            )

        scp_match = _SCP_RE.match(raw)
        if scp_match:
            return cls(
                kind=LocationKind.SSH,
                url=raw,
                host=scp_match.group("host"),
                user=scp_match.group("user"),
                path=scp_match.group("path"),
                scp_like=True,
            )

        # Short form: host/org/repo
        if "/" in raw:
            return cls.parse(f"https://{raw}")

        raise ValueError(f"Cannot parse repository location: {raw}")

    @property
    def is_local(self) -> bool:
        return self.kind == LocationKind.LOCAL

    @property
    def is_ssh(self) -> bool:
        return self.kind == LocationKind.SSH

    @property
    def is_http(self) -> bool:
        return self.kind in (LocationKind.HTTPS, LocationKind.HTTP)

    def identity(self) -> str:
        """
        Normalized identity of the repository.

        Examples:
            https://GitHub.com/user/repo.git/      -> https://github.com/user/repo
            https://token@github.com/user/repo     -> https://github.com/user/repo
            git@github.com:user/repo.git           -> git@github.com:user/repo
            ssh://git@host:22/user/repo            -> ssh://git@host/user/repo
        """
        if self.is_local:
            return self.url

        host = (self.host or "").lower()
        path = _strip_repo_suffix(self.path)
        if self.scp_like:
            user = f"{self.user}@" if self.user else ""
            return f"{user}{host}:{path}"

        scheme = self.kind.value
        netloc = host
        if self.port is not None and self.port != _DEFAULT_PORTS[scheme]:
            netloc = f"{host}:{self.port}"
        # Only SSH users are part of the identity; HTTP userinfo may carry secrets.
        if self.is_ssh and self.user:
            netloc = f"{self.user}@{netloc}"
        return f"{scheme}://{netloc}{path}"

    def cache_key(self) -> str:
        """
        Go-style cache path for the repository.

        Examples:
            https://github.com/user/repo.git -> github.com/user/repo
            git@github.com:user/repo.git -> github.com/user/repo
            https://gitlab.com/group/subgroup/project -> gitlab.com/group/subgroup/project
        """
        if self.is_local:
            raise ValueError("Local repositories are not cached")
        host = (self.host or "").lower()
        if self.port is not None and self.port != _DEFAULT_PORTS[self.kind.value]:
            host = f"{host}_{self.port}"
        parts = [
            p for p in _strip_repo_suffix(self.path).split("/") if p not in ("", ".", "..", "~")
        ]
        return "/".join([host] + parts)

    def host_key_alias(self) -> Optional[str]:
        """Name the SSH host key is looked up under in known_hosts."""
        if not self.is_ssh or not self.host:
            return None
        if self.port is not None and self.port != _DEFAULT_PORTS["ssh"]:
            return f"[{self.host}]:{self.port}"
        return self.host

    def transport_url(self, service_host: Optional[ServiceHost] = None) -> str:
        """
        URL handed to git. A service host replaces the host (and port) of the
        location; the path and user are kept.
        """
        if service_host is None or self.is_local:
            return self.url

        user = f"{self.user}@" if self.user else ""
        if self.scp_like:
            if service_host.port is None:
                return f"{user}{service_host.host}:{self.path}"
            path = self.path if self.path.startswith("/") else f"/{self.path}"
            return f"ssh://{user}{service_host.netloc()}{path}"

        parsed = urlparse(self.url)
        userinfo = ""
        if parsed.username:
            userinfo = parsed.username
            if parsed.password:
                userinfo = f"{userinfo}:{parsed.password}"
            userinfo = f"{userinfo}@"
        netloc = f"{userinfo}{service_host.netloc(self.port)}"
        return parsed._replace(netloc=netloc).geturl()

    def redacted_url(self) -> str:
        """URL safe for logs and error messages."""
        if self.is_local or self.scp_like:
            return self.url
        parsed = urlparse(self.url)
        if parsed.password is None:
            return self.url
        netloc = f"{parsed.username}:***@{parsed.hostname}"
        if parsed.port is not None:
            netloc = f"{netloc}:{parsed.port}"
        return parsed._replace(netloc=netloc).geturl()

    def __str__(self) -> str:
        return self.redacted_url()
