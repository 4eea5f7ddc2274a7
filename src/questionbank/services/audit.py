"""HTTP-level audit recording of state-changing requests.

Entries are persisted from background tasks; a failed write is logged and
dropped so the audited request is never affected.
"""

import asyncio
import json
from dataclasses import asdict, dataclass
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questionbank.config import settings
from questionbank.db import async_session_factory
from questionbank.repositories.audit_log import AuditLogRepository

REDACTED = "***REDACTED***"

SENSITIVE_FIELDS = frozenset(
    field.lower()
    for field in (
        "password",
        "newPassword",
        "confirmPassword",
        "token",
        "refreshToken",
        "creditCard",
        "cvv",
        "ssn",
        "apiKey",
        "secret",
    )
)

SENSITIVE_METHODS = frozenset({"POST", "PUT", "DELETE"})


def redact_sensitive_data(value: Any) -> Any:
    """Return a copy of ``value`` with sensitive fields masked at any depth."""
    if isinstance(value, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS
            else redact_sensitive_data(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_sensitive_data(item) for item in value]
    return value


def serialize_body(raw_body: bytes) -> str | None:
    """Redact and serialize a JSON request body; other bodies are not kept."""
    if not raw_body:
        return None
    try:
        parsed = json.loads(raw_body)
    except ValueError:
        return None
    if isinstance(parsed, dict | list) and not parsed:
        return None
    return json.dumps(redact_sensitive_data(parsed))


@dataclass
class AuditEntry:
    """Captured metadata of one audited request."""

    user_id: int | None
    action: str
    method: str
    path: str
    ip_address: str | None = None
    user_agent: str | None = None
    params: str | None = None
    query: str | None = None
    request_body: str | None = None
    status_code: int | None = None
    response_time_ms: float | None = None
    error: str | None = None


class AuditRecorder:
    """Decide which requests are audited and persist their entries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        sensitive_paths: list[str] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.sensitive_paths = tuple(
            sensitive_paths
            if sensitive_paths is not None
            else settings.audit_sensitive_paths
        )
        self._pending: set[asyncio.Task[None]] = set()

    def is_sensitive(self, method: str, path: str) -> bool:
        """Check if a request must be audited."""
        return method.upper() in SENSITIVE_METHODS or any(
            path.startswith(prefix) for prefix in self.sensitive_paths
        )

    def record(self, entry: AuditEntry) -> None:
        """Persist ``entry`` in the background without waiting for it."""
        task = asyncio.create_task(self.persist(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def persist(self, entry: AuditEntry) -> bool:
        """Write one entry. Returns False (after logging) if the write failed."""
        factory = self.session_factory or async_session_factory
        try:
            async with factory() as session:
                await AuditLogRepository.create(session, **asdict(entry))
                await session.commit()
        except Exception as exc:
            logger.error(
                "Failed to save audit log",
                action=entry.action,
                error=f"{type(exc).__name__}: {exc}",
            )
            return False
        return True

    async def drain(self) -> None:
        """Wait for all in-flight writes to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


audit_recorder = AuditRecorder()
