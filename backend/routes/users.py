"""
CRM - Routes Users

Création de compte sans session: le login (JWT / Google) est hors de ce service.
"""

from fastapi import APIRouter
from pymongo.errors import DuplicateKeyError
import logging

from config import db, new_id, utc_now, hash_password
from models import UserCreate, public_user
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger("users")

router = APIRouter(prefix="/user", tags=["Users"])


@router.post("", status_code=201)
async def create_user(data: UserCreate):
    existing = await db.users.find_one({"email": data.email}, {"_id": 1})
    if existing:
        raise ValidationError("A user with this email already exists")

    now = utc_now()
    user = {
        "_id": new_id(),
        "name": data.name,
        "email": data.email,
        "createdAt": now,
        "updatedAt": now
    }
    if data.password:
        user["password"] = hash_password(data.password)
    if data.googleId:
        user["googleId"] = data.googleId
    if data.avatar:
        user["avatar"] = data.avatar

    try:
        await db.users.insert_one(user)
    except DuplicateKeyError:
        raise ValidationError("A user with this email already exists")

    logger.info(f"User created: {user['_id']} ({data.email})")

    return {"message": "User created successfully", "user": public_user(user)}


@router.get("")
async def list_users():
    users = await db.users.find({}, {"password": 0}).sort("createdAt", -1).to_list(None)
    return {"message": "Users fetched successfully", "users": users}


@router.get("/{user_id}")
async def get_user(user_id: str):
    user = await db.users.find_one({"_id": user_id}, {"password": 0})
    if not user:
        raise NotFoundError("User not found")
    return {"message": "User fetched successfully", "user": user}


@router.delete("/{user_id}")
async def delete_user(user_id: str):
    user = await db.users.find_one_and_delete({"_id": user_id})
    if not user:
        raise NotFoundError("User not found")
    return {"message": "User deleted successfully", "user": public_user(user)}
