from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RecipeBase(BaseModel):
    title: str = Field(
        ..., min_length=1, max_length=200,
        json_schema_extra={"example": "Simple Pancakes"},
    )
    instructions: str = Field(
        ..., min_length=1,
        json_schema_extra={"example": "Mix, rest for 10 minutes, fry."},
    )
    category_id: int = Field(..., json_schema_extra={"example": 1})
    ingredient_ids: List[int] = Field(
        default_factory=list, json_schema_extra={"example": [1, 2]}
    )
    # stored relative image path (e.g. /images/recipes/abc.jpg)
    image_path: Optional[str] = None


class RecipeCreate(RecipeBase):
    pass


class RecipeEdit(RecipeBase):
    id: Optional[int] = None


class RecipeDetails(BaseModel):
    id: int
    title: str
    instructions: str
    category: str
    ingredients: List[str] = Field(default_factory=list)
    author_id: str
    image_path: Optional[str] = None


class RecipeList(RecipeDetails):
    pass


class RecipeEditView(RecipeEdit):
    can_delete: bool = False


class CategoryOption(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class IngredientOption(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class DeleteResult(BaseModel):
    deleted: bool


class UserRegister(BaseModel):
    username: Optional[str] = None
    email: str
    password: str


class UserLogin(BaseModel):
    username: str = Field(..., description="User name or email")
    password: str


class UserUpdate(BaseModel):
    username: str = Field(..., min_length=1)
    email: str


class User(BaseModel):
    id: str
    username: str
    email: str
    roles: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            roles=sorted(user.role_names),
            created_at=user.created_at,
        )
