"""TrustStore — explicit handle on the issuer's on-disk trust store.

The issuer mutates one unlocked directory tree; each deployment run gets
its own. Every gateway call receives the store it works on, there is no
process-wide default.

Layout (as written by ``nsc``)::

    <root>/<operator>/<operator>.jwt
    <root>/<operator>/accounts/<account>/<account>.jwt
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


class TrustStore:
    """A trust store directory exclusively owned by one run.

    Ephemeral stores live in a fresh temp directory and are removed on
    :meth:`close`. Persistent stores (needed to reuse an operator across
    runs) are left in place.
    """

    def __init__(self, root: Path, *, ephemeral: bool) -> None:
        self.root = root
        self.ephemeral = ephemeral
        self._closed = False

    @classmethod
    def create_ephemeral(cls) -> TrustStore:
        root = Path(tempfile.mkdtemp(prefix="natsforge-store-"))
        logger.debug("Allocated ephemeral trust store at %s", root)
        return cls(root, ephemeral=True)

    @classmethod
    def open_persistent(cls, path: Path) -> TrustStore:
        root = path.expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)
        return cls(root, ephemeral=False)

    # --- Issuer-private directories ---

    @property
    def keys_dir(self) -> Path:
        """Where the issuer keeps private keys for this store."""
        return self.root / ".nkeys"

    @property
    def home_dir(self) -> Path:
        """Issuer configuration home, isolated per store."""
        return self.root / ".nsc"

    @property
    def creds_dir(self) -> Path:
        """Scratch area for freshly generated credential bundles."""
        return self.root / ".creds"

    # --- Well-known artifact paths ---

    def operator_jwt_path(self, operator: str) -> Path:
        return self.root / operator / f"{operator}.jwt"

    def account_jwt_path(self, operator: str, account: str) -> Path:
        return self.root / operator / "accounts" / account / f"{account}.jwt"

    # --- Lifecycle ---

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.ephemeral:
            shutil.rmtree(self.root, ignore_errors=True)
            logger.debug("Removed ephemeral trust store %s", self.root)

    def __enter__(self) -> TrustStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = "ephemeral" if self.ephemeral else "persistent"
        return f"TrustStore({str(self.root)!r}, {kind})"
