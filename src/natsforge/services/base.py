"""BaseService — shared foundation for natsforge services."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from natsforge.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from natsforge.config.settings import ForgeSettings
    from natsforge.domain.errors import ForgeError


class BaseService:
    """Base for service-layer classes.

    Every service receives the resolved :class:`ForgeSettings`.
    """

    def __init__(self, settings: ForgeSettings) -> None:
        self._settings = settings

    @staticmethod
    def _failure(
        op: str,
        exc: ForgeError,
        *,
        stage: str | None = None,
        warnings: Iterable[str] = (),
    ) -> ServiceResult:
        """Convert *exc* into a failed ServiceResult.

        The stage and any notes attached while the error propagated are
        folded into ``error.detail``.
        """
        detail = dict(exc.detail)
        if stage is not None:
            detail["stage"] = stage
        if exc.context:
            detail["context"] = exc.context
        return ServiceResult(
            ok=False,
            op=op,
            warnings=list(warnings),
            error=ServiceError(code=exc.code, message=exc.message, detail=detail),
        )
