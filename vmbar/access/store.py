"""Persisted access grants."""

import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Optional

from ..defaults import DefaultsStore
from ..models.access import AccessGrant, GrantKind

logger = logging.getLogger(__name__)

GRANT_KEY_PREFIX = "grant."


def _encode_token(path: Path, st: os.stat_result) -> str:
    payload = {"path": str(path), "dev": st.st_dev, "ino": st.st_ino}
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def _decode_token(token: str) -> dict:
    payload = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
    if not isinstance(payload, dict) or "path" not in payload:
        raise ValueError("grant token has no path")
    return payload


class GrantStore:
    """One opaque token per grant kind, kept in the defaults store.

    A token pins the granted location by path and by inode. If the
    location disappears or is replaced by something else, the grant is
    stale and gets discarded on the next resolve.
    """

    def __init__(self, defaults: DefaultsStore):
        self.defaults = defaults

    @staticmethod
    def _key(kind: GrantKind) -> str:
        return f"{GRANT_KEY_PREFIX}{GrantKind(kind).value}"

    def _capture(self, kind: GrantKind, path: Path) -> bool:
        try:
            st = path.stat()
        except OSError as e:
            logger.warning(f"Failed to create '{kind.value}' grant for {path}: {e}")
            return False
        self.defaults.set(self._key(kind), _encode_token(path, st))
        return True

    def save(self, kind: GrantKind, path: Path) -> Optional[Path]:
        """Persist a grant for ``path`` (symlinks resolved) and return the granted root.

        Falls back to the parent directory when the exact path cannot be
        captured. Returns None if neither works.
        """
        kind = GrantKind(kind)
        resolved = Path(path).expanduser().resolve()
        if self._capture(kind, resolved):
            return resolved
        parent = resolved.parent
        if parent != resolved and self._capture(kind, parent):
            logger.info(f"Saved fallback '{kind.value}' grant for parent directory {parent}")
            return parent
        return None

    def load(self, kind: GrantKind) -> Optional[AccessGrant]:
        """Decode the stored grant without discarding it, staleness flagged."""
        kind = GrantKind(kind)
        token = self.defaults.get(self._key(kind))
        if not token:
            return None
        try:
            payload = _decode_token(token)
        except (ValueError, binascii.Error, UnicodeDecodeError) as e:
            logger.warning(f"Undecodable '{kind.value}' grant: {e}")
            return AccessGrant(kind=kind, root=Path("/"), token=token, is_stale=True)

        root = Path(payload["path"])
        try:
            st = root.stat()
            is_stale = (st.st_dev, st.st_ino) != (payload.get("dev"), payload.get("ino"))
        except OSError:
            is_stale = True
        return AccessGrant(kind=kind, root=root, token=token, is_stale=is_stale)

    def resolve(self, kind: GrantKind) -> Optional[AccessGrant]:
        """Return a usable grant, or None. Stale grants are removed."""
        grant = self.load(kind)
        if grant is None:
            return None
        if grant.is_stale:
            logger.info(f"Grant '{grant.kind.value}' is stale, discarding")
            self.discard(grant.kind)
            return None
        return grant

    def discard(self, kind: GrantKind) -> None:
        self.defaults.remove(self._key(kind))
