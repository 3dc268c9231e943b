import os

from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./business_ai.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = os.getenv("ENVIRONMENT", ENV).strip().lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and (IS_DEV or IS_TEST):
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

# Auth (JWT)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))

# Tenancy
# Records created before multi-tenancy have no company_id; while this flag is on
# they stay visible to every tenant until the backfill assigns them.
LEGACY_NULL_COMPANY_VISIBLE = _env_flag("LEGACY_NULL_COMPANY_VISIBLE", "1")
DEFAULT_MAX_USERS = int(os.getenv("DEFAULT_MAX_USERS", "20"))
EXTRA_PERMISSION_RESOURCES = [
    resource.strip().lower()
    for resource in os.getenv("EXTRA_PERMISSION_RESOURCES", "").split(",")
    if resource.strip()
]

# Superuser bootstrap
BOOTSTRAP_SUPERUSER_USERNAME = os.getenv("BOOTSTRAP_SUPERUSER_USERNAME", "admin").strip() or "admin"
BOOTSTRAP_SUPERUSER_PASSWORD = os.getenv("BOOTSTRAP_SUPERUSER_PASSWORD", "").strip()
BOOTSTRAP_SUPERUSER_EMAIL = os.getenv("BOOTSTRAP_SUPERUSER_EMAIL", "admin@businessai.com").strip()
