"""Error taxonomy for a deployment run.

Every failure raised below the service layer is a :class:`ForgeError`.
Each subclass carries a stable ``code`` and a ``detail`` dict naming the
entities involved. Callers attach entity context with
:meth:`BaseException.add_note` while the error propagates; the service
layer turns the whole thing into a ``ServiceError``.
"""

from __future__ import annotations

from typing import Any


class ForgeError(Exception):
    """Base error type."""

    code = "FORGE_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail

    @property
    def context(self) -> list[str]:
        """Context notes, innermost first."""
        return list(getattr(self, "__notes__", []))


# --- Descriptor / validation ---


class ConfigValidationError(ForgeError):
    code = "CONFIG_VALIDATION"


class DescriptorError(ConfigValidationError):
    """The deployment descriptor could not be read or parsed."""

    code = "DESCRIPTOR_INVALID"


class UnknownImportTarget(ConfigValidationError):
    code = "UNKNOWN_IMPORT_TARGET"

    def __init__(self, account: str, target: str) -> None:
        super().__init__(
            f"Account {account!r} imports from unknown account {target!r}",
            account=account,
            target=target,
        )


class NoSystemAccount(ConfigValidationError):
    code = "NO_SYSTEM_ACCOUNT"

    def __init__(self, server: str, reason: str) -> None:
        super().__init__(f"Server {server!r}: {reason}", server=server)


class UnknownRemoteAccount(ConfigValidationError):
    code = "UNKNOWN_REMOTE_ACCOUNT"

    def __init__(self, server: str, account: str) -> None:
        super().__init__(
            f"Server {server!r} has a leafnode remote for unknown account {account!r}",
            server=server,
            account=account,
        )


# --- Ordering ---


class DependencyCycle(ForgeError):
    code = "DEPENDENCY_CYCLE"

    def __init__(self, account: str, cycle: list[str]) -> None:
        path = " -> ".join([*cycle, cycle[0]]) if cycle else account
        super().__init__(
            f"Import cycle involving account {account!r}: {path}",
            account=account,
            cycle=cycle,
        )


# --- Issuer ---


class IssuerInvocationFailure(ForgeError):
    code = "ISSUER_FAILED"

    def __init__(self, operation: str, returncode: int | None, stderr: str) -> None:
        status = "could not start" if returncode is None else f"exited with {returncode}"
        message = f"Issuer operation {operation!r} {status}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, operation=operation, returncode=returncode, stderr=stderr)


class IssuerTimeout(ForgeError):
    code = "ISSUER_TIMEOUT"

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            f"Issuer operation {operation!r} timed out after {timeout:g}s",
            operation=operation,
            timeout=timeout,
        )


class MissingOperator(ForgeError):
    code = "MISSING_OPERATOR"

    def __init__(self, name: str, path: str) -> None:
        super().__init__(
            f"reuse_existing is set but no operator JWT for {name!r} exists at {path}",
            operator=name,
            path=path,
        )


class ArtifactIOError(ForgeError):
    code = "ARTIFACT_IO"

    def __init__(self, action: str, path: str, reason: str) -> None:
        super().__init__(f"Failed to {action} {path}: {reason}", path=path, action=action)


# --- Tokens ---


class TokenError(ForgeError):
    code = "TOKEN_INVALID"


class MalformedToken(TokenError):
    code = "MALFORMED_TOKEN"


class ClaimDecodeError(TokenError):
    code = "CLAIM_DECODE"


class MissingSubjectClaim(TokenError):
    code = "MISSING_SUBJECT_CLAIM"


# --- Distribution ---


class MissingCredential(ForgeError):
    code = "MISSING_CREDENTIAL"

    def __init__(self, server: str, url: str, credentials: str) -> None:
        super().__init__(
            f"Server {server!r} remote {url!r} needs {credentials!r}"
            " but no such bundle was produced",
            server=server,
            remote=url,
            credentials=credentials,
        )
