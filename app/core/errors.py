from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, status

if TYPE_CHECKING:
    from app.services.backfill import BackfillReport


class AccessError(HTTPException):
    """Base class for access failures; carries a machine readable reason."""

    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str, *, reason: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)
        self.reason = reason


class Unauthenticated(AccessError):
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Not authenticated", *, reason: str = "unauthenticated") -> None:
        super().__init__(detail, reason=reason, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AccessError):
    status_code_default = status.HTTP_403_FORBIDDEN


class NotFound(AccessError):
    status_code_default = status.HTTP_404_NOT_FOUND


class InvalidPermission(AccessError):
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, unknown: list[str]) -> None:
        super().__init__(
            f"Unknown permissions: {', '.join(unknown)}",
            reason="unknown_permission",
        )
        self.unknown = unknown


class MigrationPartialFailure(Exception):
    """Raised after a backfill run in which one or more collections failed."""

    def __init__(self, report: "BackfillReport") -> None:
        failed = ", ".join(sorted(report.failures))
        super().__init__(f"Backfill failed for collections: {failed}")
        self.report = report
