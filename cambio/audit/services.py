"""
Audit Service for logging state changes.

Entries are added to the caller's session and committed together with the
change they describe.
"""
from typing import Optional, Dict, Any, List, Literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, asc

from cambio.models.audit import AuditLog


# Type aliases
EntityType = Literal[
    "transfer", "saved_account", "admin_account", "exchange_rate", "cardless_withdrawal", "usd_permission"
]
ActionType = Literal[
    "create", "transition", "update", "verify", "unverify", "activate", "deactivate",
    "approve", "reject",
]
SourceType = Literal["api", "admin", "cascade"]


class AuditService:
    """
    Service for logging audit events.

    Usage:
        audit = AuditService(db, user_id=admin.id, source="admin")
        await audit.log_transition(transfer.id, "pending", "completed")
        await audit.log_update("exchange_rate", rate.id, {"our_rate": ("17.1", "17.3")})
    """

    def __init__(self, db: AsyncSession, user_id: Optional[str] = None, source: SourceType = "api"):
        self.db = db
        self.user_id = user_id
        self.source = source

    # ==========================================================================
    # Core Logging Methods
    # ==========================================================================

    async def log(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: ActionType,
        field_name: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
        source: Optional[SourceType] = None,
    ) -> AuditLog:
        """
        Log an audit event.

        Args:
            entity_type: Type of entity being changed
            entity_id: ID of the entity
            action: Type of action
            field_name: Optional specific field that changed
            old_value: Previous value (JSON-serialisable)
            new_value: New value (JSON-serialisable)
            extra_data: Additional context
            notes: Human-readable notes
            source: Overrides the service-wide source for this entry

        Returns:
            Created AuditLog
        """
        log = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            user_id=self.user_id,
            source=source or self.source,
            extra_data=extra_data,
            notes=notes,
        )

        self.db.add(log)
        # Don't commit here - let caller manage transaction
        return log

    # ==========================================================================
    # Convenience Methods
    # ==========================================================================

    async def log_create(
        self,
        entity_type: EntityType,
        entity_id: str,
        new_value: Dict[str, Any],
        notes: Optional[str] = None,
    ) -> AuditLog:
        """Log a create operation."""
        return await self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            action="create",
            new_value=new_value,
            notes=notes,
        )

    async def log_transition(
        self,
        transfer_id: str,
        old_status: str,
        new_status: str,
        event: Optional[str] = None,
        source: Optional[SourceType] = None,
    ) -> AuditLog:
        """Log a transfer status transition."""
        return await self.log(
            entity_type="transfer",
            entity_id=transfer_id,
            action="transition",
            field_name="status",
            old_value=old_status,
            new_value=new_status,
            extra_data={"event": event} if event else None,
            source=source,
        )

    async def log_update(
        self,
        entity_type: EntityType,
        entity_id: str,
        changes: Dict[str, tuple],
        notes: Optional[str] = None,
    ) -> List[AuditLog]:
        """
        Log an update operation.

        Args:
            changes: Dict mapping field names to (old_value, new_value) tuples

        Returns:
            List of AuditLogs (one per changed field)
        """
        logs = []
        for field_name, (old_value, new_value) in changes.items():
            if old_value != new_value:
                log = await self.log(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action="update",
                    field_name=field_name,
                    old_value=old_value,
                    new_value=new_value,
                    notes=notes,
                )
                logs.append(log)
        return logs

    # ==========================================================================
    # Query Methods
    # ==========================================================================

    async def get_entity_history(
        self,
        entity_type: EntityType,
        entity_id: str,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Get audit history for an entity, oldest first."""
        query = (
            select(AuditLog)
            .where(
                and_(
                    AuditLog.entity_type == entity_type,
                    AuditLog.entity_id == entity_id,
                )
            )
            .order_by(asc(AuditLog.created_at))
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
