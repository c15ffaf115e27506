import os
from dotenv import load_dotenv

load_dotenv()
# Render/Heroku hand out "postgres://", SQLAlchemy wants "postgresql://"
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./contabil.db").replace(
    "postgres://", "postgresql://", 1)
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 480))
TRIAL_DAYS = int(os.getenv("TRIAL_DAYS", 15))
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@empresa.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
CORS_ORIGINS = [o.strip() for o in
                os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
                if o.strip()]
CNPJ_LOOKUP_TIMEOUT = 10  # seconds
RECEITAWS_URL = os.getenv("RECEITAWS_URL", "https://www.receitaws.com.br/v1/cnpj")
BRASILAPI_URL = os.getenv("BRASILAPI_URL", "https://brasilapi.com.br/api/cnpj/v1")
BACKUP_DIR = os.getenv("BACKUP_DIR", "./storage")
ESOCIAL_TP_AMB = os.getenv("ESOCIAL_TP_AMB", "2")  # 1 = produção, 2 = produção restrita
EFD_COD_VER = os.getenv("EFD_COD_VER", "006")
