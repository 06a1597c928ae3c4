"""
Authentication for git transports.

An AuthConfig is one of:

    NoAuth()                          anonymous access
    TokenAuth(secret)                 HTTP basic auth, token as the password
    HeaderAuth(secret)                raw Authorization header value
    SSHAuth(socket, known_hosts)      SSH agent socket + known hosts entries

authenticate() turns a location and an AuthConfig into TransportCredentials:
git configuration and environment for exactly one git process. Secrets are
resolved there and handed to git through GIT_CONFIG_* environment variables,
so they never show up on a command line or in GitPython's debug log.
Temporary files (the known hosts file) are removed when the context exits.
"""

import base64
import logging
import os
import shlex
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from gitsource.errors import UnsupportedTransport
from gitsource.git.location import RepositoryLocation
from gitsource.handles import Secret, ServiceHost, UnixSocket

logger = logging.getLogger(__name__)

SSH_NOT_SUPPORTED = "SSH URLs are not supported without an SSH socket"

# Usernames hosting providers expect next to a token in HTTP basic auth
_TOKEN_USERNAMES = {
    "github.com": "x-access-token",
    "gitlab.com": "oauth2",
    "bitbucket.org": "x-token-auth",
}
_DEFAULT_TOKEN_USERNAME = "x-access-token"


@dataclass(frozen=True)
class NoAuth:
    pass


@dataclass(frozen=True)
class TokenAuth:
    token: Secret


@dataclass(frozen=True)
class HeaderAuth:
    header: Secret


@dataclass(frozen=True)
class SSHAuth:
    socket: UnixSocket
    known_hosts: Optional[str] = None


AuthConfig = Union[NoAuth, TokenAuth, HeaderAuth, SSHAuth]


@dataclass
class TransportCredentials:
    """Git configuration and environment for a single git process."""

    config: List[Tuple[str, str]] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)

    def environment(self) -> Dict[str, str]:
        """Environment to run git with, config pairs included."""
        env = dict(self.env)
        env["GIT_CONFIG_COUNT"] = str(len(self.config))
        for i, (key, value) in enumerate(self.config):
            env[f"GIT_CONFIG_KEY_{i}"] = key
            env[f"GIT_CONFIG_VALUE_{i}"] = value
        return env


def token_username(host: Optional[str]) -> str:
    """
    Username to pair with a token for the given hosting provider.

    Args:
        host: Host name of the repository location

    Returns:
        Provider-specific username, x-access-token when the provider is unknown
    """
    host = (host or "").lower()
    if host in _TOKEN_USERNAMES:
        return _TOKEN_USERNAMES[host]
    if "gitlab" in host:
        return _TOKEN_USERNAMES["gitlab.com"]
    if "bitbucket" in host:
        return _TOKEN_USERNAMES["bitbucket.org"]
    return _DEFAULT_TOKEN_USERNAME


def basic_auth_header(username: str, password: str) -> str:
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def _base_credentials() -> TransportCredentials:
    # Never prompt, never consult the user's credential helpers
    return TransportCredentials(
        config=[("credential.helper", ""), ("core.askPass", "")],
        env={"GIT_TERMINAL_PROMPT": "0", "GIT_ASKPASS": "", "SSH_ASKPASS": ""},
    )


def check_transport(location: RepositoryLocation, config: AuthConfig) -> None:
    """
    Fail fast on transports that cannot work with the given configuration.

    Raises:
        UnsupportedTransport: SSH location without an SSH agent socket
    """
    if not location.is_ssh:
        return
    if not isinstance(config, SSHAuth):
        raise UnsupportedTransport(SSH_NOT_SUPPORTED, url=location.redacted_url())
    if not config.socket.exists():
        raise UnsupportedTransport(
            f"{SSH_NOT_SUPPORTED}: {config.socket.path} does not exist",
            url=location.redacted_url(),
        )


def _ssh_command(known_hosts_file: Optional[str], host_key_alias: Optional[str]) -> str:
    args = [
        "ssh",
        "-F",
        "/dev/null",
        "-o",
        "BatchMode=yes",
        "-o",
        "StrictHostKeyChecking=yes",
    ]
    if known_hosts_file is not None:
        args += [
            "-o",
            f"UserKnownHostsFile={known_hosts_file}",
            "-o",
            "GlobalKnownHostsFile=/dev/null",
        ]
    if host_key_alias is not None:
        args += ["-o", f"HostKeyAlias={host_key_alias}"]
    return shlex.join(args)


@contextmanager
def authenticate(
    location: RepositoryLocation,
    config: AuthConfig,
    service_host: Optional[ServiceHost] = None,
) -> Iterator[TransportCredentials]:
    """
    Build the credentials for one git process against ``location``.

    Raises:
        UnsupportedTransport: SSH requested without a usable agent socket
    """
    check_transport(location, config)
    credentials = _base_credentials()

    if location.is_local:
        yield credentials
        return

    if location.is_http:
        match config:
            case TokenAuth(token=token):
                username = token_username(location.host)
                logger.debug(f"Using token authentication as {username} for {location}")
                header = basic_auth_header(username, token.plaintext())
                credentials.config.append(("http.extraHeader", f"Authorization: {header}"))
            case HeaderAuth(header=header):
                logger.debug(f"Using header authentication for {location}")
                credentials.config.append(
                    ("http.extraHeader", f"Authorization: {header.plaintext()}")
                )
        yield credentials
        return

    if location.is_ssh:
        if not isinstance(config, SSHAuth):
            raise UnsupportedTransport(SSH_NOT_SUPPORTED, url=location.redacted_url())
        alias = location.host_key_alias() if service_host is not None else None
        known_hosts_file = None
        try:
            if config.known_hosts:
                with tempfile.NamedTemporaryFile(
                    "w", prefix="gitsource-known-hosts-", delete=False
                ) as f:
                    f.write(config.known_hosts.strip() + "\n")
                    known_hosts_file = f.name
            credentials.env["SSH_AUTH_SOCK"] = config.socket.path
            credentials.env["GIT_SSH_COMMAND"] = _ssh_command(known_hosts_file, alias)
            credentials.env["GIT_SSH_VARIANT"] = "ssh"
            logger.debug(f"Using SSH agent at {config.socket.path} for {location}")
            yield credentials
        finally:
            if known_hosts_file is not None:
                os.unlink(known_hosts_file)
        return

    yield credentials
