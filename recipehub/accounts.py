import logging
import re
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from . import models
from .exceptions import AccountError, DuplicateAccountError
from .policy import USER_ROLE

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[\w\.\+-]+@[\w\.-]+\.\w+$")
MIN_PASSWORD_LENGTH = 6


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def password_problems(password: str) -> List[str]:
    """Return the password rules ``password`` breaks (empty if none)."""
    problems = []
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(
            f"must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not any(c.islower() for c in password):
        problems.append("must contain a lower-case letter")
    if not any(c.isupper() for c in password):
        problems.append("must contain an upper-case letter")
    if not any(c.isdigit() for c in password):
        problems.append("must contain a digit")
    if all(c.isalnum() for c in password):
        problems.append("must contain a non-alphanumeric character")
    return problems


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    if not user_id:
        return None
    return db.get(models.User, user_id)


def get_user_by_username(db: Session, username: str):
    return (
        db.query(models.User).filter(models.User.username == username).first()
    )


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def get_or_create_role(db: Session, name: str) -> models.Role:
    role = db.query(models.Role).filter(models.Role.name == name).first()
    if role is None:
        role = models.Role(name=name)
        db.add(role)
        db.flush()
        logger.info("Created role %s", name)
    return role


def add_to_role(db: Session, user: models.User, role_name: str):
    role = get_or_create_role(db, role_name)
    if role not in user.roles:
        user.roles.append(role)
    db.commit()


def _check_unique(db: Session, username, email, user_id=None):
    other = get_user_by_username(db, username)
    if other is not None and other.id != user_id:
        raise DuplicateAccountError(f"User name '{username}' is already taken")
    other = get_user_by_email(db, email)
    if other is not None and other.id != user_id:
        raise DuplicateAccountError(f"Email '{email}' is already registered")


def register_user(
    db: Session, username: Optional[str], email: str, password: str
) -> models.User:
    """Create an account with the default user role.

    The user name defaults to the email address.
    """
    email = (email or "").strip()
    username = (username or "").strip() or email
    if not validate_email(email):
        raise AccountError("Invalid email format")
    problems = password_problems(password)
    if problems:
        raise AccountError("Password " + "; ".join(problems))
    _check_unique(db, username, email)

    user = models.User(
        username=username,
        email=email,
        password_hash=generate_password_hash(password),
    )
    user.roles.append(get_or_create_role(db, USER_ROLE))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.username, user.id)
    return user


def authenticate(db: Session, login: str, password: str):
    user = get_user_by_username(db, login) or get_user_by_email(db, login)
    if user is None or not check_password_hash(user.password_hash, password):
        logger.info("Failed login for %s", login)
        return None
    return user


def list_users(db: Session, search: Optional[str] = None):
    query = db.query(models.User)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(
                models.User.username.ilike(pattern),
                models.User.email.ilike(pattern),
            )
        )
    return query.order_by(models.User.username).all()


def update_user(db: Session, user_id: str, username: str, email: str):
    user = get_user(db, user_id)
    if user is None:
        return None
    username = (username or "").strip()
    email = (email or "").strip()
    if not username:
        raise AccountError("User name is required")
    if not validate_email(email):
        raise AccountError("Invalid email format")
    _check_unique(db, username, email, user_id=user.id)
    user.username = username
    user.email = email
    db.commit()
    db.refresh(user)
    logger.info("Updated user %s", user.id)
    return user


def delete_user(db: Session, user_id: str, acting_user_id: str) -> bool:
    if user_id == acting_user_id:
        raise AccountError("You cannot delete your own account")
    user = get_user(db, user_id)
    if user is None:
        return False
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
    return True
