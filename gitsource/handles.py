"""
Opaque handles supplied by collaborators outside of gitsource.

- Secret: a value owned by a secret store, resolved only when a git process
  is about to run. It never appears in reprs, logs or digests.
- UnixSocket: a host socket, used for the SSH agent.
- ServiceHost: a network endpoint standing in for the host of a repository
  location (sandboxed git servers in tests, service containers).
"""

import os
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass(frozen=True)
class Secret:
    """A named secret, resolved lazily.

    Either ``value`` or ``resolver`` must be given. ``resolver`` is called each
    time the plaintext is needed and is never cached by this object.
    """

    name: str
    value: Optional[str] = field(default=None, repr=False, compare=False)
    resolver: Optional[Callable[[], str]] = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self):
        if self.value is None and self.resolver is None:
            raise ValueError(f"Secret {self.name!r} has neither a value nor a resolver")

    @classmethod
    def from_env(cls, variable: str) -> "Secret":
        """A secret read from an environment variable at transport time."""

        def _read() -> str:
            try:
                return os.environ[variable]
            except KeyError:
                raise ValueError(f"Environment variable {variable} is not set")

        return cls(name=variable, resolver=_read)

    def plaintext(self) -> str:
        if self.resolver is not None:
            return self.resolver()
        return self.value  # type: ignore[return-value]

    def __str__(self) -> str:
        return f"Secret({self.name})"


@dataclass(frozen=True)
class UnixSocket:
    """A unix socket on the host, e.g. the listener of an SSH agent."""

    path: str

    def exists(self) -> bool:
        return os.path.exists(self.path)


@dataclass(frozen=True)
class ServiceHost:
    """An addressable endpoint substituted for the host of a location."""

    host: str
    port: Optional[int] = None

    def netloc(self, default_port: Optional[int] = None) -> str:
        port = self.port if self.port is not None else default_port
        if port is None:
            return self.host
        return f"{self.host}:{port}"
