import os

# must be set before bravebooks is imported: the engine is built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PLATFORM_URL"] = "https://books.test"
for var in ("ADMIN_EMAIL", "ADMIN_PASSWORD", "SMTP_HOST", "BOOK_ACCESS_TOKEN_EXPIRY_DAYS", "DB_CREATE_ALL"):
    os.environ.pop(var, None)

import pytest
from fastapi.testclient import TestClient

from bravebooks.config import settings
from bravebooks.db.base import Base, new_id
from bravebooks.db.seed import seed
from bravebooks.db.session import SessionLocal, engine
from bravebooks.db.store import Store
from bravebooks.main import app
from bravebooks.models.user import User
from bravebooks.services import rate_limit
from bravebooks.utils.security import hash_password
from bravebooks.utils.tokens import issue_session_token

PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def fresh_state():
    settings.reload()
    rate_limit.clear_all()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(Store(db))
    finally:
        db.close()
    yield
    settings.reload()
    rate_limit.clear_all()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def store():
    db = SessionLocal()
    try:
        yield Store(db)
    finally:
        db.close()


def make_user(store: Store, email: str = "reader@example.com", *, role: str = "user", name: str = "Test Reader") -> User:
    user = store.add_user(
        User(
            id=new_id("user"),
            email=email,
            password_hash=hash_password(PASSWORD),
            name=name,
            subscription_status="free",
            role=role,
        )
    )
    store.commit()
    return user


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_session_token(user.id, user.email)}"}


def register(client: TestClient, email: str, password: str = PASSWORD, name: str = "Test Reader"):
    return client.post("/auth/register", json={"name": name, "email": email, "password": password})
