"""
Local (username/password) accounts.

Accounts created through an external identity provider carry no password
hash and a different ``login_method``; they never pass verify_password.
"""
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from hourbook.infrastructure.db.models import User

LOCAL_LOGIN_METHOD = "local"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """False for accounts without a local password"""
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def is_local_account(user: User) -> bool:
    return user.login_method == LOCAL_LOGIN_METHOD


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()
