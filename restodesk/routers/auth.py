import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from restodesk.db import get_db
from restodesk.models.core import User
from restodesk.routers.users import user_out
from restodesk.schemas.common import LoginIn, Token
from restodesk.util.security import create_token, verify_pw

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    if not body.username or not body.password:
        raise HTTPException(status_code=400, detail="Username and password are required")
    user = db.query(User).filter(User.username == body.username).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not user.active:
        raise HTTPException(status_code=403, detail="Your account is inactive. Please contact an administrator.")
    if not verify_pw(user.pass_hash, body.password):
        logger.info("failed login for %s", body.username)
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return Token(user=user_out(user), access_token=create_token(user.id, user.role.value))
