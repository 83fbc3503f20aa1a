# auth.py

from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from room_booking.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from room_booking.database import database, utcnow
from room_booking.errors import UnauthenticatedError, ValidationError
from room_booking.models import users

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# auto_error is off so a missing header surfaces as our own 401 envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


# Pydantic Models
class User(BaseModel):
    id: int
    email: str
    name: Optional[str] = None


class UserCreate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    password: Optional[str] = None


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


async def get_user_by_email(email: str):
    query = users.select().where(users.c.email == email)
    return await database.fetch_one(query)

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email})


async def create_user(user: UserCreate) -> User:
    if not user.email or not user.password:
        raise ValidationError("Email and password are required")
    if await get_user_by_email(user.email):
        raise ValidationError("User with this email already exists")

    query = users.insert().values(
        email=user.email,
        name=user.name,
        hashed_password=pwd_context.hash(user.password),
        created_at=utcnow(),
    )
    user_id = await database.execute(query)
    return User(id=user_id, email=user.email, name=user.name)


async def authenticate_user(credentials: UserLogin) -> User:
    if not credentials.email or not credentials.password:
        raise ValidationError("Email and password are required")
    record = await get_user_by_email(credentials.email)
    if not record or not verify_password(credentials.password, record["hashed_password"]):
        raise UnauthenticatedError("Invalid email or password")
    return User(id=record["id"], email=record["email"], name=record["name"])


# Helper function to decode token and fetch user
async def _decode_token_and_get_user(token: Optional[str]) -> User:
    if token is None:
        raise UnauthenticatedError()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise UnauthenticatedError()

    record = await database.fetch_one(users.select().where(users.c.id == user_id))
    if record is None:
        raise UnauthenticatedError()
    return User(id=record["id"], email=record["email"], name=record["name"])


# Used for every authenticated API call
async def get_current_active_user(token: Optional[str] = Depends(oauth2_scheme)) -> User:
    return await _decode_token_and_get_user(token)
