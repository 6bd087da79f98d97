# flake8: noqa
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipehub import accounts, models, seed
from recipehub.config import Settings
from recipehub.db import Base
from recipehub.exceptions import AccountError, DuplicateAccountError
from recipehub.policy import ADMIN_ROLE, USER_ROLE


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


def test_register_and_authenticate(db):
    user = accounts.register_user(db, None, "cook@example.com", "Secret1!")
    assert user.username == "cook@example.com"
    assert user.password_hash != "Secret1!"
    assert user.role_names == {USER_ROLE}

    assert accounts.authenticate(db, "cook@example.com", "Secret1!").id == user.id
    assert accounts.authenticate(db, "cook@example.com", "wrong") is None
    assert accounts.authenticate(db, "nobody", "Secret1!") is None


def test_authenticate_by_username(db):
    accounts.register_user(db, "chef", "chef@example.com", "Secret1!")
    assert accounts.authenticate(db, "chef", "Secret1!") is not None


def test_register_rejects_duplicates(db):
    accounts.register_user(db, "chef", "chef@example.com", "Secret1!")
    with pytest.raises(DuplicateAccountError):
        accounts.register_user(db, "chef", "other@example.com", "Secret1!")
    with pytest.raises(DuplicateAccountError):
        accounts.register_user(db, "chef2", "chef@example.com", "Secret1!")


def test_register_validates_email_and_password(db):
    with pytest.raises(AccountError):
        accounts.register_user(db, None, "not-an-email", "Secret1!")
    with pytest.raises(AccountError) as exc:
        accounts.register_user(db, None, "a@example.com", "short")
    assert "digit" in exc.value.message
    assert db.query(models.User).count() == 0


def test_password_problems():
    assert accounts.password_problems("Admin123!") == []
    assert len(accounts.password_problems("")) == 5


def test_list_users_search(db):
    accounts.register_user(db, "alice", "alice@example.com", "Secret1!")
    accounts.register_user(db, "bob", "bob@cooking.org", "Secret1!")

    assert [u.username for u in accounts.list_users(db)] == ["alice", "bob"]
    assert [u.username for u in accounts.list_users(db, "COOKING")] == ["bob"]
    assert [u.username for u in accounts.list_users(db, " ali ")] == ["alice"]


def test_update_user(db):
    user = accounts.register_user(db, "alice", "alice@example.com", "Secret1!")
    accounts.register_user(db, "bob", "bob@example.com", "Secret1!")

    updated = accounts.update_user(db, user.id, "alice2", "alice2@example.com")
    assert updated.username == "alice2"
    assert updated.email == "alice2@example.com"

    with pytest.raises(DuplicateAccountError):
        accounts.update_user(db, user.id, "bob", "alice2@example.com")
    with pytest.raises(AccountError):
        accounts.update_user(db, user.id, "alice3", "broken")
    assert accounts.update_user(db, "missing", "x", "x@example.com") is None


def test_delete_user(db):
    admin = accounts.register_user(db, "admin", "admin@example.com", "Secret1!")
    user = accounts.register_user(db, "bob", "bob@example.com", "Secret1!")

    with pytest.raises(AccountError):
        accounts.delete_user(db, admin.id, admin.id)
    assert accounts.delete_user(db, user.id, admin.id) is True
    assert accounts.get_user(db, user.id) is None
    assert accounts.delete_user(db, user.id, admin.id) is False


def test_seed_all_is_idempotent(db):
    settings = Settings(ADMIN_EMAIL="root@example.com", ADMIN_PASSWORD="Root123!")

    seed.seed_all(db, settings)
    seed.seed_all(db, settings)

    assert db.query(models.Role).count() == len(seed.DEFAULT_ROLES)
    assert db.query(models.Category).count() == len(seed.DEFAULT_CATEGORIES)
    assert db.query(models.Ingredient).count() == len(seed.DEFAULT_INGREDIENTS)
    admins = db.query(models.User).all()
    assert len(admins) == 1
    assert admins[0].role_names == {ADMIN_ROLE}
    assert accounts.authenticate(db, "root@example.com", "Root123!") is not None


def test_seed_reference_data_keeps_existing_rows(db):
    db.add(models.Category(name="Only"))
    db.commit()

    categories, ingredients = seed.seed_reference_data(db)

    assert categories == 0
    assert ingredients == len(seed.DEFAULT_INGREDIENTS)
    assert [c.name for c in db.query(models.Category).all()] == ["Only"]
