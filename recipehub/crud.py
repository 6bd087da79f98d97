import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from . import models, schemas
from .exceptions import InvalidReferenceError

logger = logging.getLogger(__name__)


def unique_ids(ids):
    # keep first occurrence, a recipe lists each ingredient once
    seen = set()
    out = []
    for i in ids or []:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


def check_references(db: Session, category_id: int, ingredient_ids):
    category = db.get(models.Category, category_id)
    if category is None:
        logger.warning("Rejected recipe: unknown category %s", category_id)
        raise InvalidReferenceError(
            f"Category {category_id} does not exist",
            category_id=category_id,
        )
    if not ingredient_ids:
        return
    found = {
        row[0]
        for row in db.query(models.Ingredient.id)
        .filter(models.Ingredient.id.in_(ingredient_ids))
        .all()
    }
    missing = [i for i in ingredient_ids if i not in found]
    if missing:
        logger.warning("Rejected recipe: unknown ingredients %s", missing)
        raise InvalidReferenceError(
            "Unknown ingredient id(s): " + ", ".join(str(i) for i in missing),
            ingredient_ids=missing,
        )


def _recipes_query(db: Session):
    return db.query(models.Recipe).options(
        joinedload(models.Recipe.category),
        selectinload(models.Recipe.recipe_ingredients)
        .joinedload(models.RecipeIngredient.ingredient),
    )


def _to_details(recipe: models.Recipe, model=schemas.RecipeDetails):
    return model(
        id=recipe.id,
        title=recipe.title,
        instructions=recipe.instructions,
        category=recipe.category.name,
        ingredients=[ri.ingredient.name for ri in recipe.recipe_ingredients],
        author_id=recipe.user_id,
        image_path=recipe.image_path,
    )


def create_recipe(
    db: Session, recipe: schemas.RecipeCreate, owner_id: str
) -> int:
    ingredient_ids = unique_ids(recipe.ingredient_ids)
    check_references(db, recipe.category_id, ingredient_ids)
    db_recipe = models.Recipe(
        title=recipe.title,
        instructions=recipe.instructions,
        category_id=recipe.category_id,
        user_id=owner_id,
        image_path=recipe.image_path,
        recipe_ingredients=[
            models.RecipeIngredient(ingredient_id=i) for i in ingredient_ids
        ],
    )
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    logger.info("Created recipe %s for user %s", db_recipe.id, owner_id)
    return db_recipe.id


def list_recipes(db: Session) -> List[schemas.RecipeList]:
    recipes = _recipes_query(db).order_by(models.Recipe.id).all()
    return [_to_details(r, schemas.RecipeList) for r in recipes]


def get_recipe(db: Session, recipe_id: int) -> Optional[schemas.RecipeDetails]:
    recipe = _recipes_query(db).filter(models.Recipe.id == recipe_id).first()
    if recipe is None:
        logger.debug("Recipe %s not found", recipe_id)
        return None
    return _to_details(recipe)


def get_recipe_for_edit(
    db: Session, recipe_id: int
) -> Optional[schemas.RecipeEdit]:
    recipe = (
        db.query(models.Recipe)
        .options(selectinload(models.Recipe.recipe_ingredients))
        .filter(models.Recipe.id == recipe_id)
        .first()
    )
    if recipe is None:
        return None
    return schemas.RecipeEdit(
        id=recipe.id,
        title=recipe.title,
        instructions=recipe.instructions,
        category_id=recipe.category_id,
        ingredient_ids=[ri.ingredient_id for ri in recipe.recipe_ingredients],
        image_path=recipe.image_path,
    )


def edit_recipe(db: Session, recipe_id: int, recipe: schemas.RecipeEdit) -> bool:
    """Overwrite a recipe with ``recipe``.

    Returns False without touching the store when the recipe does not exist.
    The ingredient set is replaced as a whole, and the image path is only
    replaced when a non-blank one is given.
    """
    db_recipe = (
        db.query(models.Recipe)
        .options(selectinload(models.Recipe.recipe_ingredients))
        .filter(models.Recipe.id == recipe_id)
        .first()
    )
    if db_recipe is None:
        logger.debug("Edit skipped, recipe %s not found", recipe_id)
        return False

    ingredient_ids = unique_ids(recipe.ingredient_ids)
    check_references(db, recipe.category_id, ingredient_ids)

    db_recipe.title = recipe.title
    db_recipe.instructions = recipe.instructions
    db_recipe.category_id = recipe.category_id
    if recipe.image_path and recipe.image_path.strip():
        db_recipe.image_path = recipe.image_path

    # drop old joins before adding new ones with possibly the same keys
    db_recipe.recipe_ingredients.clear()
    db.flush()
    db_recipe.recipe_ingredients = [
        models.RecipeIngredient(ingredient_id=i) for i in ingredient_ids
    ]
    db.commit()
    logger.info("Edited recipe %s", recipe_id)
    return True


def delete_recipe(db: Session, recipe_id: int) -> bool:
    db_recipe = db.get(models.Recipe, recipe_id)
    if db_recipe is None:
        logger.debug("Delete skipped, recipe %s not found", recipe_id)
        return False
    db.delete(db_recipe)
    db.commit()
    logger.info("Deleted recipe %s", recipe_id)
    return True


def list_categories(db: Session) -> List[schemas.CategoryOption]:
    return [
        schemas.CategoryOption.model_validate(c)
        for c in db.query(models.Category).all()
    ]


def list_ingredients(db: Session) -> List[schemas.IngredientOption]:
    return [
        schemas.IngredientOption.model_validate(i)
        for i in db.query(models.Ingredient).all()
    ]


def get_owner_id(db: Session, recipe_id: int) -> Optional[str]:
    row = (
        db.query(models.Recipe.user_id)
        .filter(models.Recipe.id == recipe_id)
        .first()
    )
    return row[0] if row else None


def is_owner(db: Session, recipe_id: int, user_id: str) -> bool:
    return (
        db.query(models.Recipe.id)
        .filter(
            models.Recipe.id == recipe_id,
            models.Recipe.user_id == user_id,
        )
        .first()
        is not None
    )
