from dataclasses import dataclass
from sqlalchemy.orm import Session
from theatre_pos.models.core import AuditLog
from theatre_pos.schemas.audit import AuditChange, Cancellation, Refund


@dataclass(frozen=True)
class RequestContext:
    """Who/where of a mutating call; passed explicitly into every service write."""
    user_id: str | None
    ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def audit(db: Session, ctx: RequestContext, entity: str, entity_id: str,
          action: str, change: AuditChange | None = None):
    reason = change.reason if isinstance(change, (Cancellation, Refund)) else None
    entry = AuditLog(
        actor_user_id=ctx.user_id,
        entity=entity, entity_id=entity_id,
        action=action,
        reason=reason,
        changes=change.model_dump_json() if change is not None else None,
        ip_address=ctx.ip,
        user_agent=(ctx.user_agent or "")[:300] or None,
        request_id=ctx.request_id,
    )
    db.add(entry)
