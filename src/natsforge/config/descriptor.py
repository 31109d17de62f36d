"""Deployment descriptor loading.

The descriptor is JSON by default; a ``.toml`` suffix selects TOML.
Relative server ``output_dir`` values stay as written here and are
resolved against the working directory during normalization.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from natsforge.domain.deployment import DeploymentConfig
from natsforge.domain.errors import DescriptorError


def parse_deployment(data: dict[str, Any], *, source: str = "<memory>") -> DeploymentConfig:
    """Validate raw descriptor data into a :class:`DeploymentConfig`.

    Raises:
        DescriptorError: The data does not match the descriptor schema.
    """
    try:
        return DeploymentConfig.model_validate(data)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise DescriptorError(
            f"Invalid deployment descriptor {source}: {problems[0]}",
            source=source,
            problems=problems,
        ) from exc


def load_deployment(path: Path) -> DeploymentConfig:
    """Read and validate the descriptor at *path*.

    Raises:
        DescriptorError: Unreadable file, bad JSON/TOML, or schema mismatch.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptorError(f"Cannot read descriptor {path}: {exc}", source=str(path)) from exc

    try:
        if path.suffix.lower() == ".toml":
            data = tomllib.loads(raw)
        else:
            data = json.loads(raw)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise DescriptorError(f"Cannot parse descriptor {path}: {exc}", source=str(path)) from exc

    if not isinstance(data, dict):
        raise DescriptorError(f"Descriptor {path} must be an object", source=str(path))
    return parse_deployment(data, source=str(path))
