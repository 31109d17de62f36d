"""CredentialDistributor — replicate artifacts across server units.

Every server validates tokens locally, so each one needs a copy of every
account JWT in the deployment. Leafnode remotes additionally need the
credential bundle they authenticate with next to the server's config.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from natsforge.domain.deployment import ServerConfig
from natsforge.domain.errors import MissingCredential
from natsforge.infrastructure.filesystem import copy_exact

logger = logging.getLogger(__name__)


class CredentialDistributor:
    """Copies owner-written artifacts into every server that references them.

    Args:
        account_jwts: ``<account>.jwt`` file name → owner copy path.
        bundles: ``<account>-<user>.creds`` file name → owner copy path.
    """

    def __init__(self, account_jwts: Mapping[str, Path], bundles: Mapping[str, Path]) -> None:
        self._account_jwts = dict(account_jwts)
        self._bundles = dict(bundles)

    def replicate_accounts(self, servers: Sequence[ServerConfig]) -> list[Path]:
        """Copy every account JWT into every server output dir."""
        copied: list[Path] = []
        for server in servers:
            for filename in sorted(self._account_jwts):
                src = self._account_jwts[filename]
                dest = server.output_dir / filename
                if dest == src:
                    continue
                copied.append(copy_exact(src, dest))
        return copied

    def distribute_remote_credentials(self, servers: Sequence[ServerConfig]) -> list[Path]:
        """Copy each leafnode remote's bundle next to the referencing server.

        Raises:
            MissingCredential: No produced bundle has the remote's file name.
        """
        copied: list[Path] = []
        for server in servers:
            for remote in server.leafnodes.remotes:
                src = self._bundles.get(remote.credentials)
                if src is None:
                    raise MissingCredential(server.name, remote.url, remote.credentials)
                dest = server.output_dir / remote.credentials
                if dest == src:
                    continue
                copied.append(copy_exact(src, dest, secret=True))
                logger.debug("Copied %s to server %s", remote.credentials, server.name)
        return copied

    def distribute(self, servers: Sequence[ServerConfig]) -> list[Path]:
        """Run both replication passes; return every path written."""
        return [*self.replicate_accounts(servers), *self.distribute_remote_credentials(servers)]
