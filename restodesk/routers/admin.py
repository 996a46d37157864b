import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from restodesk.config import settings
from restodesk.db import get_db
from restodesk.models.core import User, UserRole
from restodesk.util.security import hash_pw

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# username, name, email, role
DEFAULT_USERS = [
    ("owner", "Sarah Owner", "owner@restaurant.com", UserRole.OWNER),
    ("manager", "John Manager", "manager@restaurant.com", UserRole.MANAGER),
    ("kitchen", "Michael Chef", "chef@restaurant.com", UserRole.KITCHEN),
    ("bar", "Lisa Bartender", "bar@restaurant.com", UserRole.BAR),
    ("waiter", "Robert Waiter", "waiter@restaurant.com", UserRole.WAITER),
    ("waiter2", "Jessica Waitress", "waiter2@restaurant.com", UserRole.WAITER),
    ("receptionist", "Emma Host", "host@restaurant.com", UserRole.RECEPTIONIST),
    ("shisha", "Adam Shisha", "shisha@restaurant.com", UserRole.SHISHA),
]

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    created, existing = [], []
    for username, name, email, role in DEFAULT_USERS:
        if db.query(User).filter(User.username == username).first():
            existing.append(username)
            continue
        db.add(User(
            username=username,
            name=name,
            email=email,
            role=role,
            pass_hash=hash_pw(settings.DEFAULT_PASSWORD),
            active=True,
        ))
        created.append(username)
        logger.info("Created user: %s", username)

    db.commit()
    return {
        "created": created,
        "existing": existing,
        "password": settings.DEFAULT_PASSWORD,
    }
