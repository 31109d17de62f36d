"""Config file discovery.

Walk-up finder locates natsforge.toml, the way git finds .git/.
NATSFORGE_CONFIG and the --config CLI flag override the search.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "natsforge.toml"
CONFIG_ENV_VAR = "NATSFORGE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for natsforge.toml.

    NATSFORGE_CONFIG, when set, wins; if it names a missing file no
    config is used at all.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None
