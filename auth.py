"""
Accounts, bearer tokens and the FastAPI dependencies that guard routes.

Routes receive the decoded identity ``{"sub", "email", "role"}``; services
never see tokens.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import config
from database import create_document
from errors import DuplicateEmailError
from schemas import User

logger = logging.getLogger(__name__)

COLLECTION = "user"

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_token(user: dict) -> str:
    payload = {
        "sub": str(user["_id"]),
        "email": user["email"],
        "role": user["role"],
        "exp": datetime.now(timezone.utc) + timedelta(hours=config.JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _auth_response(user: dict) -> dict:
    return {
        "access_token": create_token(user),
        "user": {
            "id": str(user["_id"]),
            "email": user["email"],
            "name": user.get("name"),
            "role": user["role"],
        },
    }


def ensure_indexes(db: Database) -> None:
    db[COLLECTION].create_index("email", unique=True)


def register(db: Database, name: str, email: str, password: str) -> dict:
    if db[COLLECTION].find_one({"email": email}):
        raise DuplicateEmailError(email)
    user = User(email=email, password=hash_password(password), name=name, role="user")
    try:
        user_id = create_document(db, COLLECTION, user)
    except DuplicateKeyError:
        raise DuplicateEmailError(email)
    return _auth_response(db[COLLECTION].find_one({"_id": user_id}))


def login(db: Database, email: str, password: str) -> dict:
    user = db[COLLECTION].find_one({"email": email, "is_active": True})
    if not user or not verify_password(password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _auth_response(user)


def init_admin(db: Database, email: Optional[str] = None, password: Optional[str] = None) -> dict:
    """Create the bootstrap admin account unless it already exists."""
    email = email or config.ADMIN_EMAIL
    existing = db[COLLECTION].find_one({"email": email})
    if existing:
        return existing
    admin = User(email=email, password=hash_password(password or config.ADMIN_PASSWORD), role="admin")
    admin_id = create_document(db, COLLECTION, admin)
    logger.info("Created admin account %s", email)
    return db[COLLECTION].find_one({"_id": admin_id})


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_token(credentials.credentials)
    return {"sub": payload["sub"], "email": payload.get("email"), "role": payload.get("role", "user")}


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
