"""Repository for HTTP audit log entries."""

from sqlalchemy.ext.asyncio import AsyncSession

from questionbank.models.audit_log import AuditLog


class AuditLogRepository:
    """Handle audit log persistence."""

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: int | None,
        action: str,
        method: str,
        path: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        params: str | None = None,
        query: str | None = None,
        request_body: str | None = None,
        status_code: int | None = None,
        response_time_ms: float | None = None,
        error: str | None = None,
    ) -> AuditLog:
        """Insert one audit entry."""
        entry = AuditLog(
            user_id=user_id,
            action=action,
            method=method,
            path=path,
            ip_address=ip_address,
            user_agent=user_agent,
            params=params,
            query=query,
            request_body=request_body,
            status_code=status_code,
            response_time_ms=response_time_ms,
            error=error,
        )
        session.add(entry)
        await session.flush()
        return entry
