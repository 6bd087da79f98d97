# flake8: noqa

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from . import accounts, crud, models, policy, schemas
from .auth import (
    get_current_user, login_user, logout_user, require_admin, require_user,
)
from .config import settings
from .db import SessionLocal, get_db, init_db
from .exceptions import AccountError, DuplicateAccountError, InvalidReferenceError
from .filters import filter_recipes
from .images import IMAGE_URL_PREFIX, save_image
from .seed import seed_all

logger = logging.getLogger(__name__)


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize DB and reference data once at startup
    configure_logging(settings.LOG_LEVEL)
    init_db()
    if settings.SEED_ON_STARTUP:
        with SessionLocal() as db:
            seed_all(db, settings)
    logger.info("RecipeHub started")
    yield


app = FastAPI(title="RecipeHub", lifespan=lifespan)

templates_dir = Path(__file__).resolve().parents[1] / "templates"
templates = Jinja2Templates(directory=str(templates_dir))

# Uploaded images; the directory may not exist until the first upload
app.mount(
    IMAGE_URL_PREFIX,
    StaticFiles(directory=settings.IMAGE_DIR, check_dir=False),
    name="images",
)

app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)
# Allow CORS for API clients (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidReferenceError)
def invalid_reference_handler(request: Request, exc: InvalidReferenceError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(AccountError)
def account_error_handler(request: Request, exc: AccountError):
    status = 409 if isinstance(exc, DuplicateAccountError) else 400
    return JSONResponse(status_code=status, content={"detail": exc.message})


@app.exception_handler(ValidationError)
def validation_error_handler(request: Request, exc: ValidationError):
    # models built inside form handlers, after request parsing
    return JSONResponse(
        status_code=422, content={"detail": jsonable_encoder(exc.errors())}
    )


def ensure_can_modify(db: Session, recipe_id: int, user: models.User):
    owner_id = crud.get_owner_id(db, recipe_id)
    if not policy.can_modify(user.id, owner_id, user.role_names):
        raise HTTPException(status_code=403, detail="Not allowed")


def can_edit(db: Session, recipe_id: int, user: Optional[models.User]) -> bool:
    if user is None:
        return False
    return policy.is_admin(user.role_names) or crud.is_owner(db, recipe_id, user.id)


def parse_category_id(value: Optional[str]) -> Optional[int]:
    # "All categories" in the filter form submits an empty value
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


def list_filtered(db: Session, q=None, category_id=None, ingredient=None):
    recipes = crud.list_recipes(db)
    category = None
    if category_id is not None:
        category = next(
            (c.name for c in crud.list_categories(db) if c.id == category_id),
            None,
        )
    return filter_recipes(recipes, q=q, category=category, ingredient=ingredient)


# --- account endpoints ---

@app.post("/api/auth/register", response_model=schemas.User, status_code=201)
def register(
    request: Request, payload: schemas.UserRegister, db: Session = Depends(get_db)
):
    user = accounts.register_user(db, payload.username, payload.email, payload.password)
    login_user(request, user)
    return schemas.User.from_orm_user(user)


@app.post("/api/auth/login", response_model=schemas.User)
def login(request: Request, payload: schemas.UserLogin, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, payload.username, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid user name or password")
    login_user(request, user)
    return schemas.User.from_orm_user(user)


@app.post("/api/auth/logout", status_code=204)
def logout(request: Request):
    logout_user(request)
    return Response(status_code=204)


@app.get("/api/auth/me", response_model=schemas.User)
def me(user: models.User = Depends(require_user)):
    return schemas.User.from_orm_user(user)


# --- reference data ---

@app.get("/api/categories", response_model=List[schemas.CategoryOption])
def api_categories(db: Session = Depends(get_db)):
    return crud.list_categories(db)


@app.get("/api/ingredients", response_model=List[schemas.IngredientOption])
def api_ingredients(db: Session = Depends(get_db)):
    return crud.list_ingredients(db)


# --- recipe JSON API ---

@app.get("/api/recipes", response_model=List[schemas.RecipeList])
def api_list_recipes(
    q: Optional[str] = None,
    category_id: Optional[str] = None,
    ingredient: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return list_filtered(
        db, q=q, category_id=parse_category_id(category_id), ingredient=ingredient
    )


@app.get("/api/recipes/{recipe_id}", response_model=schemas.RecipeDetails)
def api_get_recipe(recipe_id: int, db: Session = Depends(get_db)):
    recipe = crud.get_recipe(db, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


@app.get("/api/recipes/{recipe_id}/edit", response_model=schemas.RecipeEditView)
def api_get_recipe_for_edit(
    recipe_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    ensure_can_modify(db, recipe_id, user)
    recipe = crud.get_recipe_for_edit(db, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return schemas.RecipeEditView(
        **recipe.model_dump(), can_delete=can_edit(db, recipe_id, user)
    )


@app.post("/api/recipes", response_model=schemas.RecipeDetails, status_code=201)
def api_create_recipe(
    recipe: schemas.RecipeCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    recipe_id = crud.create_recipe(db, recipe, user.id)
    return crud.get_recipe(db, recipe_id)


@app.put("/api/recipes/{recipe_id}", response_model=schemas.RecipeDetails)
def api_update_recipe(
    recipe_id: int,
    recipe: schemas.RecipeEdit,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    if recipe.id is not None and recipe.id != recipe_id:
        raise HTTPException(status_code=400, detail="Recipe id does not match the URL")
    ensure_can_modify(db, recipe_id, user)
    if not crud.edit_recipe(db, recipe_id, recipe):
        raise HTTPException(status_code=404, detail="Recipe not found")
    return crud.get_recipe(db, recipe_id)


@app.delete("/api/recipes/{recipe_id}", response_model=schemas.DeleteResult)
def api_delete_recipe(
    recipe_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    ensure_can_modify(db, recipe_id, user)
    return {"deleted": crud.delete_recipe(db, recipe_id)}


# --- HTML pages and form posts ---

STATUS_MESSAGE_KEY = "status_message"


def flash(request: Request, message: str):
    request.session[STATUS_MESSAGE_KEY] = message


def pop_flash(request: Request) -> Optional[str]:
    return request.session.pop(STATUS_MESSAGE_KEY, None)


def render(request: Request, name: str, context: dict, status_code: int = 200):
    context.setdefault("status_message", pop_flash(request))
    return templates.TemplateResponse(request, name, context, status_code=status_code)


@app.get("/", response_class=HTMLResponse)
def read_root(
    request: Request,
    q: Optional[str] = None,
    category_id: Optional[str] = None,
    ingredient: Optional[str] = None,
    db: Session = Depends(get_db),
    user: Optional[models.User] = Depends(get_current_user),
):
    selected = parse_category_id(category_id)
    recipes = list_filtered(db, q=q, category_id=selected, ingredient=ingredient)
    return render(
        request,
        "recipes/index.html",
        {
            "recipes": recipes,
            "categories": crud.list_categories(db),
            "q": q or "",
            "category_id": selected,
            "ingredient": ingredient or "",
            "user": user,
            "is_admin": user is not None and policy.is_admin(user.role_names),
        },
    )


@app.get("/recipes/new", response_class=HTMLResponse)
def new_recipe_page(
    request: Request,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    return render(
        request,
        "recipes/create.html",
        {
            "categories": crud.list_categories(db),
            "ingredients": crud.list_ingredients(db),
            "user": user,
        },
    )


@app.get("/recipes/{recipe_id}", response_class=HTMLResponse)
def view_recipe(
    request: Request,
    recipe_id: int,
    db: Session = Depends(get_db),
    user: Optional[models.User] = Depends(get_current_user),
):
    recipe = crud.get_recipe(db, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return render(
        request,
        "recipes/details.html",
        {"recipe": recipe, "can_edit": can_edit(db, recipe_id, user), "user": user},
    )


@app.get("/recipes/{recipe_id}/edit", response_class=HTMLResponse)
def edit_recipe_page(
    request: Request,
    recipe_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    ensure_can_modify(db, recipe_id, user)
    recipe = crud.get_recipe_for_edit(db, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return render(
        request,
        "recipes/edit.html",
        {
            "recipe": recipe,
            "categories": crud.list_categories(db),
            "ingredients": crud.list_ingredients(db),
            "user": user,
        },
    )


@app.post("/recipes")
def create_recipe_form(
    title: str = Form(...),
    instructions: str = Form(...),
    category_id: int = Form(...),
    ingredient_ids: List[int] = Form([]),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    # a rejected recipe must not leave an uploaded file behind
    crud.check_references(db, category_id, crud.unique_ids(ingredient_ids))
    recipe = schemas.RecipeCreate(
        title=title,
        instructions=instructions,
        category_id=category_id,
        ingredient_ids=ingredient_ids,
    )
    recipe.image_path = save_image(image, settings.IMAGE_DIR)
    crud.create_recipe(db, recipe, user.id)
    return RedirectResponse(url="/", status_code=303)


@app.post("/recipes/{recipe_id}/edit")
def edit_recipe_form(
    recipe_id: int,
    title: str = Form(...),
    instructions: str = Form(...),
    category_id: int = Form(...),
    ingredient_ids: List[int] = Form([]),
    image_path: Optional[str] = Form(None),
    new_image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    ensure_can_modify(db, recipe_id, user)
    if crud.get_owner_id(db, recipe_id) is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    crud.check_references(db, category_id, crud.unique_ids(ingredient_ids))
    recipe = schemas.RecipeEdit(
        id=recipe_id,
        title=title,
        instructions=instructions,
        category_id=category_id,
        ingredient_ids=ingredient_ids,
        image_path=image_path,
    )
    stored = save_image(new_image, settings.IMAGE_DIR)
    if stored:
        recipe.image_path = stored
    crud.edit_recipe(db, recipe_id, recipe)
    return RedirectResponse(url=f"/recipes/{recipe_id}", status_code=303)


@app.post("/recipes/{recipe_id}/delete")
def delete_recipe_form(
    recipe_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_user),
):
    ensure_can_modify(db, recipe_id, user)
    crud.delete_recipe(db, recipe_id)
    return RedirectResponse(url="/", status_code=303)


# --- admin pages ---

@app.get("/admin/users", response_class=HTMLResponse)
def admin_users_page(
    request: Request,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    return render(
        request,
        "admin/users.html",
        {"users": accounts.list_users(db, search), "search": search or "", "user": admin},
    )


@app.post("/admin/users/{user_id}/delete")
def admin_delete_user_form(
    request: Request,
    user_id: str,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    try:
        deleted = accounts.delete_user(db, user_id, admin.id)
    except AccountError as exc:
        flash(request, exc.message)
    else:
        flash(request, "User deleted." if deleted else "User not found.")
    return RedirectResponse(url="/admin/users", status_code=303)


@app.get("/admin/users/{user_id}/edit", response_class=HTMLResponse)
def admin_edit_user_page(
    request: Request,
    user_id: str,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    target = accounts.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    return render(
        request,
        "admin/user_edit.html",
        {
            "target": target,
            "username": target.username,
            "email": target.email,
            "error": None,
            "user": admin,
        },
    )


@app.post("/admin/users/{user_id}/edit")
def admin_edit_user_form(
    request: Request,
    user_id: str,
    username: str = Form(...),
    email: str = Form(...),
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    target = accounts.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        accounts.update_user(db, user_id, username, email)
    except AccountError as exc:
        db.rollback()
        return render(
            request,
            "admin/user_edit.html",
            {
                "target": target,
                "username": username,
                "email": email,
                "error": exc.message,
                "user": admin,
            },
            status_code=400,
        )
    flash(request, "User updated.")
    return RedirectResponse(url="/admin/users", status_code=303)


# --- admin area ---

@app.get("/api/admin/users", response_model=List[schemas.User])
def admin_list_users(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    return [schemas.User.from_orm_user(u) for u in accounts.list_users(db, search)]


@app.get("/api/admin/users/{user_id}", response_model=schemas.User)
def admin_get_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    user = accounts.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return schemas.User.from_orm_user(user)


@app.put("/api/admin/users/{user_id}", response_model=schemas.User)
def admin_update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    user = accounts.update_user(db, user_id, payload.username, payload.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return schemas.User.from_orm_user(user)


@app.delete("/api/admin/users/{user_id}", response_model=schemas.DeleteResult)
def admin_delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    if not accounts.delete_user(db, user_id, admin.id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"deleted": True}
