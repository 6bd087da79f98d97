# Case-insensitive substring filters over already loaded recipe lists.
from typing import Iterable, List, Optional

from .schemas import RecipeList


def _term(s: Optional[str]) -> str:
    if not s:
        return ""
    return s.strip().lower()


def _contains(haystack: str, term: str) -> bool:
    return term in (haystack or "").lower()


def matches_query(recipe: RecipeList, q: str) -> bool:
    """Return True if ``q`` occurs in the title or in any ingredient name."""
    term = _term(q)
    if not term:
        return True
    if _contains(recipe.title, term):
        return True
    return any(_contains(i, term) for i in recipe.ingredients)


def matches_category(recipe: RecipeList, category: str) -> bool:
    term = _term(category)
    if not term:
        return True
    return (recipe.category or "").strip().lower() == term


def matches_ingredient(recipe: RecipeList, ingredient: str) -> bool:
    term = _term(ingredient)
    if not term:
        return True
    return any(_contains(i, term) for i in recipe.ingredients)


def filter_recipes(
    recipes: Iterable[RecipeList],
    q: Optional[str] = None,
    category: Optional[str] = None,
    ingredient: Optional[str] = None,
) -> List[RecipeList]:
    return [
        r for r in recipes
        if matches_query(r, q)
        and matches_category(r, category)
        and matches_ingredient(r, ingredient)
    ]
