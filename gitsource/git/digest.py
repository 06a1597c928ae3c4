"""
Stable fingerprints of checkouts.

The digest of a checkout depends only on the repository identity, the commit
and the tree options. Credentials, service hosts, timing and the process that
resolved the ref never take part, so independent clients resolving the same
branch to the same commit compute the same digest.
"""

import hashlib
import json
from typing import Optional

from gitsource.git.resolver import ResolvedRef, TreeOptions

DIGEST_ALGORITHM = "sha256"


def fingerprint(resolved: ResolvedRef, options: Optional[TreeOptions] = None) -> str:
    """
    Compute the digest of a checkout.

    Args:
        resolved: The resolved ref
        options: Tree options (defaults to keeping the .git directory)

    Returns:
        Digest string, e.g. "sha256:3b1f..."
    """
    options = options or TreeOptions()
    document = {
        "location": resolved.identity,
        "commit": resolved.sha.lower(),
        "discard_git_dir": options.discard_git_dir,
    }
    payload = json.dumps(document, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{DIGEST_ALGORITHM}:{digest}"


def digest_hex(digest: str) -> str:
    """Hex part of a digest, usable as a directory name."""
    algorithm, _, value = digest.partition(":")
    if algorithm != DIGEST_ALGORITHM or len(value) != 64:
        raise ValueError(f"Invalid digest: {digest}")
    return value
