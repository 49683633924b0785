import logging
import os
import sys
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# In case pytest tests/ -v -s is run, it will only read .env.test
if "pytest" in sys.modules or os.environ.get("TESTING") == "True":
    test_env_path = Path(__file__).parent.parent / "tests" / ".env.test"
    if test_env_path.exists():
        load_dotenv(test_env_path, override=True)
        logger.info("Loaded test environment from: %s", test_env_path)
    os.environ.setdefault("TESTING", "True")
else:
    load_dotenv()

TESTING = os.environ.get("TESTING") == "True"
FLASK_ENV = os.environ.get("FLASK_ENV")


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable ("1", "true", "yes", "on")."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


PRODUCTION_HOST_MARKERS = (
    "supabase.co",
    "pooler.supabase.com",
    "rlwy.net",
    "railway.internal",
    "production",
    "amazonaws.com",
    "azure.com",
)


def is_production_database(db_url: str) -> bool:
    """True when the URL points at a hosted or production database."""
    lowered = (db_url or "").lower()
    return any(marker in lowered for marker in PRODUCTION_HOST_MARKERS)


def normalize_database_url(db_url: str) -> str:
    """Pin MySQL URLs to the PyMySQL driver and fix legacy postgres:// schemes."""
    if not db_url:
        return db_url
    if db_url.startswith("mysql://"):
        return db_url.replace("mysql://", "mysql+pymysql://", 1)
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql://", 1)
    return db_url


if TESTING or FLASK_ENV == "testing":
    # Defaults to a private in-memory SQLite database per process
    url = os.environ.get("DATABASE_TEST_URL", "sqlite://")

    if is_production_database(url):
        raise RuntimeError(
            "Refusing to run tests against what looks like a production database"
        )

    prod_url = os.environ.get("DATABASE_URL")
    if prod_url and is_production_database(prod_url):
        os.environ.pop("DATABASE_URL", None)
        logger.warning("Blocked access to production database during testing")

else:
    url = os.environ.get("DATABASE_URL")

    if not url:
        if FLASK_ENV == "development":
            url = "sqlite:///physiocare_dev.sqlite"
            logger.warning("DATABASE_URL not set, using local development database")
        else:
            raise ValueError(
                "DATABASE_URL environment variable is required for production"
            )

    if is_production_database(url):
        logger.warning("Using production database - be careful!")

url = normalize_database_url(url)


def describe_database(db_url: str) -> str:
    """Mask credentials so the URL can be logged."""
    if db_url and "@" in db_url:
        parts = db_url.split("@")
        protocol_user = parts[0].split("://")[0] + "://****:****"
        return f"{protocol_user}@{parts[1]}"
    return db_url or "configured"


class Config:
    SQLALCHEMY_DATABASE_URI = url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get("SECRET_KEY", "physiocare-development-secret-key-change-me")

    TESTING = TESTING

    # Identity provider
    JWT_EXPIRE_MINUTES = int(os.environ.get("JWT_EXPIRE_MINUTES", "60"))

    # Naive appointment timestamps are read in the clinic's local offset
    CLINIC_UTC_OFFSET = os.environ.get("CLINIC_UTC_OFFSET", "+07:00")

    # Invoice write policy
    INVOICE_ATOMIC_WRITES = env_flag("INVOICE_ATOMIC_WRITES", True)
    INVOICE_ALLOW_TOTAL_OVERRIDE = env_flag("INVOICE_ALLOW_TOTAL_OVERRIDE", False)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "https://kheng-physiocare.netlify.app,http://127.0.0.1:5500,http://localhost:8888",
        ).split(",")
        if origin.strip()
    ]

    # Patient avatars
    S3_BUCKET_NAME = os.environ.get("S3_BUCKET_NAME")
    S3_REGION = os.environ.get("AWS_REGION", "us-east-1")
    S3_BASE_URL = os.environ.get("S3_BASE_URL")

    # Background jobs
    ENABLE_SCHEDULER = env_flag("ENABLE_SCHEDULER", False) and not TESTING
    SCHEDULER_INTERVAL_MINUTES = int(os.environ.get("SCHEDULER_INTERVAL_MINUTES", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
