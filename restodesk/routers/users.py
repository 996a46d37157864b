# restodesk/routers/users.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from restodesk.config import settings
from restodesk.db import get_db
from restodesk.deps import require_owner
from restodesk.models.core import User, UserRole
from restodesk.util.audit import audit
from restodesk.util.security import hash_pw

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# ── helpers ─────────────────────────────────────────────────────────────────

def user_out(u: User) -> dict:
    """Public user shape; never includes the password hash."""
    return {
        "id": u.id,
        "username": u.username,
        "name": u.name,
        "email": u.email,
        "role": u.role.value,
        "active": bool(u.active),
        "isGroupHead": bool(u.is_group_head),
        "groupRole": u.group_role.value if u.group_role else None,
        "parentId": u.parent_id,
        "createdAt": u.created_at.date().isoformat() if u.created_at else None,
    }

def _parse_role(value) -> UserRole:
    try:
        return UserRole(str(value).upper())
    except ValueError:
        raise HTTPException(400, detail=f"Invalid role: {value}")

def _ensure_unique(db: Session, username: str | None, email: str | None, exclude_id: str | None = None):
    if username:
        q = db.query(User).filter(User.username == username)
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise HTTPException(400, detail="Username already exists")
    if email:
        q = db.query(User).filter(User.email == email)
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise HTTPException(400, detail="Email already exists")

def _new_user(db: Session, body: dict, **extra) -> User:
    if not all(body.get(k) for k in ("username", "name", "email", "role")):
        raise HTTPException(400, detail="Missing required fields")
    role = _parse_role(body["role"])
    _ensure_unique(db, body["username"], body["email"])
    u = User(
        username=body["username"],
        name=body["name"],
        email=body["email"],
        role=role,
        pass_hash=hash_pw(body.get("password") or settings.DEFAULT_PASSWORD),
        active=body.get("active", True),
        **extra,
    )
    db.add(u)
    db.flush()
    return u


# ── Users ───────────────────────────────────────────────────────────────────

@router.get("", summary="List users, newest first")
def list_users(db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    rows = db.query(User).order_by(User.created_at.desc()).all()
    return [user_out(u) for u in rows]


@router.post("")
def create_user(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    """
    body: {username, name, email, role, password?, active?}
    password defaults to the configured default password.
    """
    u = _new_user(db, body)
    audit(db, sub, "user", u.id, "CREATE", {"username": u.username, "role": u.role.value})
    db.commit()
    db.refresh(u)
    return user_out(u)


@router.post("/create-group", summary="Create a group head or attach users to one")
def create_group(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    op = body.get("operation")
    if op == "create-group-head":
        if not all(body.get(k) for k in ("username", "name", "email", "role")):
            raise HTTPException(400, detail="Missing required fields for group head")
        role = _parse_role(body["role"])
        u = _new_user(db, body, is_group_head=True, group_role=role)
        audit(db, sub, "user", u.id, "CREATE_GROUP_HEAD", {"role": role.value})
        db.commit()
        db.refresh(u)
        return {
            "success": True,
            "message": f"Successfully created {role.value} group head user",
            "user": user_out(u),
        }

    if op == "add-to-group":
        head_id = body.get("groupHeadId")
        user_ids = body.get("userIds")
        if not head_id or not isinstance(user_ids, list):
            raise HTTPException(400, detail="Missing group head ID or user IDs")
        head = db.get(User, head_id)
        if not head or not head.is_group_head:
            raise HTTPException(404, detail="Invalid group head ID")
        updated = 0
        for uid in user_ids:
            u = db.get(User, uid)
            if not u:
                logger.warning("add-to-group: user %s not found", uid)
                continue
            u.parent_id = head.id
            u.group_role = head.role
            updated += 1
        audit(db, sub, "user", head.id, "ADD_TO_GROUP", {"userIds": user_ids, "updated": updated})
        db.commit()
        return {
            "success": True,
            "message": f"Added {updated} users to {head.role.value} group",
            "updatedCount": updated,
            "failedCount": len(user_ids) - updated,
        }

    raise HTTPException(400, detail='Invalid operation. Use "create-group-head" or "add-to-group"')


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="User not found")
    return user_out(u)


@router.put("/{user_id}")
def update_user(user_id: str, body: dict, db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="User not found")

    if body.get("role"):
        role = _parse_role(body["role"])
        if u.role == UserRole.OWNER and role != UserRole.OWNER:
            raise HTTPException(400, detail="Cannot change owner role")
        u.role = role

    _ensure_unique(
        db,
        body.get("username") if body.get("username") != u.username else None,
        body.get("email") if body.get("email") != u.email else None,
        exclude_id=u.id,
    )
    for key in ("username", "name", "email"):
        if body.get(key):
            setattr(u, key, body[key])
    if body.get("active") is not None:
        u.active = bool(body["active"])
    if body.get("password"):
        u.pass_hash = hash_pw(body["password"])

    audit(db, sub, "user", u.id, "UPDATE", {k: v for k, v in body.items() if k != "password"})
    db.commit()
    db.refresh(u)
    return user_out(u)


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="User not found")
    if u.role == UserRole.OWNER:
        raise HTTPException(403, detail="Cannot delete owner user")
    if u.staff:
        raise HTTPException(409, detail="User has a staff record")
    # members of a deleted group head leave the group
    released = (
        db.query(User)
        .filter(User.parent_id == u.id)
        .update({User.parent_id: None, User.group_role: None}, synchronize_session="fetch")
    )
    if released:
        logger.info("user %s deleted, released %d group members", u.id, released)
    db.delete(u)
    audit(db, sub, "user", user_id, "DELETE")
    db.commit()
    return {"success": True}


@router.patch("/{user_id}/toggle-status")
def toggle_status(user_id: str, body: dict | None = None, db: Session = Depends(get_db),
                  sub: str = Depends(require_owner)):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="User not found")
    body = body or {}
    if body.get("active") is not None:
        u.active = body["active"] is True or body["active"] == "true"
    else:
        u.active = not u.active
    logger.info("user %s active -> %s", u.id, u.active)
    audit(db, sub, "user", u.id, "TOGGLE_STATUS", {"active": u.active})
    db.commit()
    db.refresh(u)
    return user_out(u)
