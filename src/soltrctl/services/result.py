"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All service-layer methods return ServiceResult.
The CLI is the only consumer today; error codes are the error taxonomy:

- ``VALIDATION_ERROR``: bad or missing input, caught before any external call
- ``MISSING_TOOL``: a required binary is not installed
- ``EXTERNAL_COMMAND_FAILED``: a wrapped tool exited non-zero
- ``POLICY_WRITE_FAILED``: a trust-policy write was rolled back
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

VALIDATION_ERROR = "VALIDATION_ERROR"
MISSING_TOOL = "MISSING_TOOL"
EXTERNAL_COMMAND_FAILED = "EXTERNAL_COMMAND_FAILED"
POLICY_WRITE_FAILED = "POLICY_WRITE_FAILED"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``detail`` keys understood by the renderer: ``usage``, ``hint``,
    ``backup_path``.
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"install"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, refresh report, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        *,
        warnings: list[str] | None = None,
        **detail: Any,
    ) -> ServiceResult:
        """Shorthand for an error result."""
        return cls(
            ok=False,
            op=op,
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail),
        )
