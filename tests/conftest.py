import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from salon_api.main import app
from salon_api.core.security import create_access_token, hash_password
from salon_api.db.database import Base, get_db
from salon_api.models.db_models import User, Role, Category, Service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_user(db):
    user = User(name="Rachell", email="admin@salon.test", password=hash_password("secret123"), role=Role.ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user.id, 'ADMIN')}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {create_access_token('some-user', 'USER')}"}


@pytest.fixture
def category(db):
    cat = Category(name="Manicure", order=0)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def service(db, category):
    svc = Service(
        name="Uñas acrílicas",
        description="Set completo",
        price=25,
        duration=90,
        category_id=category.id,
        is_active=True,
    )
    db.add(svc)
    db.commit()
    db.refresh(svc)
    return svc
