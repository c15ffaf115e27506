import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import ADMIN_EMAIL, ADMIN_PASSWORD, CORS_ORIGINS
from db import engine, Base, SessionLocal
from models import models  # noqa: F401 — registers all ORM models
from models.models import User, UserRole, LicenseType
from routers import (auth, admin, cnpj, empresas, parceiros, pessoal, folha, fiscal, comercial,
                     contabil, obrigacoes, dashboard, tickets)
from routers.auth import get_password_hash

logging.basicConfig(level=logging.INFO,
                    format="%(asctime)s  %(levelname)s  %(name)s — %(message)s")
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


def seed_admin():
    """Create the default admin if no users exist."""
    db = SessionLocal()
    try:
        if db.query(User).count() == 0:
            db.add(User(
                email=ADMIN_EMAIL,
                hashed_password=get_password_hash(ADMIN_PASSWORD),
                role=UserRole.admin,
                license_type=LicenseType.premium,
            ))
            db.commit()
            logger.info(f"Admin criado: {ADMIN_EMAIL}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed_admin()
    yield


app = FastAPI(
    title="Escritório Contábil",
    description="API de cadastro, folha de pagamento e obrigações fiscais "
                "(eSocial, EFD-Reinf, EFD-Contribuições, PGDAS)",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# All API routes live under /api
for r in (auth, admin, cnpj, empresas, parceiros, pessoal, folha, fiscal, comercial, contabil,
          obrigacoes, dashboard, tickets):
    app.include_router(r.router, prefix="/api")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
