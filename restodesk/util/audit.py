import json
from sqlalchemy.orm import Session
from restodesk.models.core import ActivityLog

def audit(db: Session, actor_user_id: str | None, entity_type: str, entity_id: str,
          action: str, details: dict | None = None):
    """Stage an ActivityLog row; the caller's commit persists it."""
    entry = ActivityLog(
        actor_user_id=actor_user_id,
        entity_type=entity_type, entity_id=entity_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
    )
    db.add(entry)
