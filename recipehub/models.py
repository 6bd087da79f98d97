import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, DateTime, ForeignKey, Integer, String, Table, Text,
)
from sqlalchemy.orm import relationship

from .db import Base


def _new_user_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36),
           ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer,
           ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)

    recipes = relationship("Recipe", back_populates="category")


class Ingredient(Base):
    __tablename__ = "ingredients"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)

    recipe_ingredients = relationship(
        "RecipeIngredient", back_populates="ingredient"
    )


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    instructions = Column(Text, nullable=False)
    # owner reference; not a foreign key so recipes outlive deleted accounts
    user_id = Column(String(36), nullable=False, index=True)
    category_id = Column(
        Integer, ForeignKey("categories.id"), nullable=False
    )
    image_path = Column(String(300), nullable=True)

    category = relationship("Category", back_populates="recipes")
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id"), primary_key=True
    )

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship(
        "Ingredient", back_populates="recipe_ingredients"
    )


class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)

    users = relationship("User", secondary=user_roles, back_populates="roles")


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_new_user_id)
    username = Column(String(150), unique=True, index=True, nullable=False)
    email = Column(String(150), unique=True, index=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    roles = relationship("Role", secondary=user_roles, back_populates="users")

    @property
    def role_names(self):
        return {r.name for r in self.roles}
