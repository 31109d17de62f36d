"""Artifact file I/O.

INVARIANT: Artifacts are written and copied as raw bytes. Nothing here
reformats, re-encodes or normalizes whitespace — credential bundles must
stay byte-identical to what the issuer produced.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from natsforge.domain.errors import ArtifactIOError

# Credential bundles carry private seeds.
SECRET_MODE = 0o600


def write_artifact(path: Path, content: str | bytes, *, secret: bool = False) -> Path:
    """Write *content* to *path*, creating parent directories.

    Raises:
        ArtifactIOError: The file could not be written.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        if secret:
            os.chmod(path, SECRET_MODE)
    except OSError as exc:
        raise ArtifactIOError("write", str(path), str(exc)) from exc
    return path


def read_artifact(path: Path) -> str:
    """Read a text artifact (JWTs are ASCII).

    Raises:
        ArtifactIOError: The file is missing or unreadable.
    """
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeError) as exc:
        raise ArtifactIOError("read", str(path), str(exc)) from exc


def read_artifact_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ArtifactIOError("read", str(path), str(exc)) from exc


def copy_exact(src: Path, dest: Path, *, secret: bool = False) -> Path:
    """Copy *src* to *dest* byte-for-byte.

    Copying a file onto itself is a no-op.

    Raises:
        ArtifactIOError: The copy failed.
    """
    try:
        if dest.exists() and dest.samefile(src):
            return dest
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        if secret:
            os.chmod(dest, SECRET_MODE)
    except OSError as exc:
        raise ArtifactIOError("copy", f"{src} -> {dest}", str(exc)) from exc
    return dest
