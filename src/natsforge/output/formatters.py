"""Output mode selection for ServiceResult.

``--json`` dumps the result model, ``--quiet`` prints one line per
produced artifact, and the default is the Rich rendering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from natsforge.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from natsforge.services.result import ServiceResult


class OutputSettings(BaseModel):
    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format *result* for display in the mode *settings* selects."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
