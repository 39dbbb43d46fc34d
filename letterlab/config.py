"""Environment configuration for the LetterLab backend."""
import os

from dotenv import load_dotenv

load_dotenv()

_DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")

APP_ENV = os.getenv("APP_ENV", "beta")  # beta | staging | prod

DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{os.path.join(_DATA_DIR, 'letterlab.db')}"

# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "letterlab-dev-secret-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

# Model
LLM_MODEL = os.getenv("LLM_MODEL", "claude-sonnet-4-5-20250929")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1500"))

# Request bodies are capped to keep model cost bounded
MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", str(16 * 1024)))

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "https://letterlab.pro",
    "https://www.letterlab.pro",
]
VERCEL_ORIGIN_REGEX = r"^https://[a-z0-9-]+(\.[a-z0-9-]+)*\.vercel\.app$"


def allowed_origins() -> list[str]:
    """Built-in allowlist plus any comma-separated CORS_ORIGINS entries."""
    extra = [o.strip().rstrip("/") for o in os.getenv("CORS_ORIGINS", "").split(",")]
    return DEFAULT_ORIGINS + [o for o in extra if o and o not in DEFAULT_ORIGINS]


def email_enabled() -> bool:
    return os.getenv("ENABLE_EMAIL", "1") != "0"


def chat_enabled() -> bool:
    return os.getenv("ENABLE_CHAT", "0") == "1"


def anthropic_api_key() -> str | None:
    return os.getenv("ANTHROPIC_API_KEY") or None
