"""Account registration, login and profile lookup."""

import logging
from datetime import datetime

from pymongo.errors import DuplicateKeyError

from models.login_model import LoginUser
from models.register_model import RegisterUser
from services.errors import InvalidStateError, NotFoundError
from services.serializers import serialize_user
from utils import create_access_token, hash_password, parse_object_id, verify_password

logger = logging.getLogger(__name__)


def _account(user) -> dict:
    account = serialize_user(user)
    account["email"] = user.get("email")
    account["createdAt"] = user.get("createdAt")
    return account


def _token_response(user) -> dict:
    token = create_access_token({"user_id": str(user["_id"]), "username": user.get("username")})
    return {"token": token, "token_type": "bearer", "user": _account(user)}


async def register(db, user: RegisterUser) -> dict:
    email = user.email.lower()
    if await db.users.find_one({"email": email}):
        raise InvalidStateError("userExists", "User already exists")

    user_dict = user.model_dump()
    user_dict.update({
        "email": email,
        "username": user.username.strip(),
        "password": hash_password(user.password),
        "bio": user.bio or "",
        "location": user.location or "",
        "avatar": "",
        "createdAt": datetime.utcnow(),
    })
    try:
        result = await db.users.insert_one(user_dict)
    except DuplicateKeyError:
        raise InvalidStateError("userExists", "User already exists")

    user_dict["_id"] = result.inserted_id
    logger.info("Registered user %s", result.inserted_id)
    return _token_response(user_dict)


async def login(db, credentials: LoginUser) -> dict:
    user = await db.users.find_one({"email": credentials.email.lower()})
    if not user or not verify_password(credentials.password, user["password"]):
        logger.debug("Failed login for %s", credentials.email)
        raise InvalidStateError("invalidCredentials", "Invalid credentials")
    return _token_response(user)


async def get_profile(db, user_id: str) -> dict:
    oid = parse_object_id(user_id)
    user = await db.users.find_one({"_id": oid}) if oid is not None else None
    if not user:
        raise NotFoundError("User not found")
    return _account(user)
