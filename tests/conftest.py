import pytest

from app import create_app
from config import TestConfig
from models import db
from models.company import Company
from models.user import Role, User

PASSWORD = "secret123"

# chave -> (empresa, nome, email, perfil)
TEST_USERS = {
    "admin_a": ("Mercado A", "Ana Admin", "ana@mercado-a.com", Role.ADMIN),
    "emp_a": ("Mercado A", "Bruno Func", "bruno@mercado-a.com", Role.EMPLOYEE),
    "emp2_a": ("Mercado A", "Carla Func", "carla@mercado-a.com", Role.EMPLOYEE),
    "admin_b": ("Mercado B", "Diego Admin", "diego@mercado-b.com", Role.ADMIN),
    "emp_b": ("Mercado B", "Eva Func", "eva@mercado-b.com", Role.EMPLOYEE),
}


def _seed_tenants(method: str) -> None:
    companies = {}
    for company_name, name, email, role in TEST_USERS.values():
        if company_name not in companies:
            company = Company(name=company_name)
            db.session.add(company)
            db.session.flush()
            companies[company_name] = company
        user = User(company_id=companies[company_name].id, name=name, email=email, role=role)
        user.set_password(PASSWORD, method=method)
        db.session.add(user)
    db.session.commit()


@pytest.fixture
def app(tmp_path):
    app = create_app(TestConfig, {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "LOG_DIR": str(tmp_path / "logs"),
    })
    with app.app_context():
        db.create_all()
        _seed_tenants(app.config["PASSWORD_HASH_METHOD"])

    # Sem app context aberto aqui: cada request do client precisa do seu
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def session(app):
    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture
def users(session):
    by_email = {u.email: u for u in session.query(User).all()}
    return {key: by_email[row[2]] for key, row in TEST_USERS.items()}


@pytest.fixture
def hash_method(app):
    return app.config["PASSWORD_HASH_METHOD"]


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, key: str, password: str = PASSWORD):
    resp = client.post("/api/login", json={"email": TEST_USERS[key][2], "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def login_as(app):
    """Client já autenticado como um dos usuários de teste."""

    def _login_as(key: str):
        c = app.test_client()
        login(c, key)
        return c

    return _login_as


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def emails():
    return {key: row[2] for key, row in TEST_USERS.items()}
