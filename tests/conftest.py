"""
Shared fixtures.

The database URL and backup folder are pointed at a temporary directory before
any application module is imported, so `config` picks them up.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="contabil-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["BACKUP_DIR"] = os.path.join(_TMP, "storage")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from db import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models.models import User, UserRole  # noqa: E402
from routers.auth import get_password_hash  # noqa: E402

EMPRESA_CNPJ = "11222333000181"

EMPRESA_DATA = {
    "razao_social": "Comercio Exemplo Ltda",
    "nome_fantasia": "Exemplo",
    "cnpj": "11.222.333/0001-81",
    "inscricao_estadual": "123456789",
    "regime_tributario": "simples",
    "logradouro": "Av Paulista",
    "numero": "1000",
    "bairro": "Bela Vista",
    "cidade": "Sao Paulo",
    "codigo_municipio": "3550308",
    "uf": "SP",
    "cep": "01310-100",
    "email": "contato@exemplo.com.br",
    "cnae_principal_codigo": "4751201",
    "anexo_simples": "I",
    "contador_nome": "Maria Contadora",
    "contador_cpf": "123.456.789-09",
    "contador_crc": "SP123456",
    "contador_email": "maria@contabil.com.br",
    "contador_telefone": "(11) 98888-7777",
}


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(autouse=True)
def _fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def client():
    return TestClient(app)


def login(client, email: str, password: str) -> dict:
    resp = client.post("/api/auth/token", data={"username": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/auth/register",
                       json={"email": "usuario@contabil.com.br", "password": "senha123"})
    assert resp.status_code == 201, resp.text
    return login(client, "usuario@contabil.com.br", "senha123")


@pytest.fixture
def admin_headers(client, db):
    db.add(User(email="admin@contabil.com.br", hashed_password=get_password_hash("admin123"),
                role=UserRole.admin))
    db.commit()
    return login(client, "admin@contabil.com.br", "admin123")


@pytest.fixture
def empresa(client, auth_headers):
    resp = client.post("/api/empresas", json=EMPRESA_DATA, headers=auth_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def base_url(empresa):
    return f"/api/empresas/{empresa['id']}"
