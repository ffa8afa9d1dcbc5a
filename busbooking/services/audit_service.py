import uuid, json
from sqlalchemy.orm import Session
from busbooking.core.security import Identity
from busbooking.models.audit_log import AuditLog

def actor_id(actor: Identity | None) -> str:
    return actor.user_id if actor else "guest"

def log_audit(db: Session, actor: Identity | str | None, action: str, entity_type: str, entity_id: str, details: dict | None = None):
    """Stage an audit row in the caller's transaction."""
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        actor_user_id=actor if isinstance(actor, str) else actor_id(actor),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))
