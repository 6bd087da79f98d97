"""Idempotent start-up bootstrap: roles, reference data and the admin account.

Every step checks what is already there first, so running it again against a
populated database changes nothing.
"""
import logging

from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from . import accounts, models
from .policy import ADMIN_ROLE, USER_ROLE

logger = logging.getLogger(__name__)

DEFAULT_ROLES = [ADMIN_ROLE, USER_ROLE]

DEFAULT_CATEGORIES = [
    "Breakfast",
    "Soup",
    "Salad",
    "Main Course",
    "Dessert",
    "Drink",
]

DEFAULT_INGREDIENTS = [
    "Sugar",
    "Flour",
    "Egg",
    "Milk",
    "Butter",
    "Salt",
    "Tomato",
    "Onion",
    "Garlic",
    "Chicken",
    "Rice",
    "Olive oil",
]


def seed_roles(db: Session) -> int:
    added = 0
    for name in DEFAULT_ROLES:
        exists = db.query(models.Role).filter(models.Role.name == name).first()
        if exists:
            continue
        db.add(models.Role(name=name))
        added += 1
    db.commit()
    return added


def seed_reference_data(db: Session):
    """Fill categories and ingredients, each only if its table is empty."""
    categories = ingredients = 0
    if db.query(models.Category).count() == 0:
        for name in DEFAULT_CATEGORIES:
            db.add(models.Category(name=name))
            categories += 1
    if db.query(models.Ingredient).count() == 0:
        for name in DEFAULT_INGREDIENTS:
            db.add(models.Ingredient(name=name))
            ingredients += 1
    db.commit()
    return categories, ingredients


def seed_admin(db: Session, email: str, password: str):
    admin = accounts.get_user_by_email(db, email)
    if admin is not None:
        return None
    # seeded credentials skip the registration password rules
    admin = models.User(
        username=email,
        email=email,
        password_hash=generate_password_hash(password),
    )
    db.add(admin)
    accounts.add_to_role(db, admin, ADMIN_ROLE)
    logger.info("Created admin account %s", email)
    return admin


def seed_all(db: Session, settings) -> None:
    roles = seed_roles(db)
    categories, ingredients = seed_reference_data(db)
    seed_admin(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    logger.info(
        "Seeding done: %d role(s), %d category(ies), %d ingredient(s) added",
        roles, categories, ingredients,
    )
