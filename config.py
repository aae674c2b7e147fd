"""
Application settings

Everything is read from the environment (a local .env file is loaded first).
"""
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

JWT_SECRET = os.getenv("JWT_SECRET", "default-unsafe-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_SECONDS = int(os.getenv("JWT_EXPIRY_SECONDS", 24 * 60 * 60))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

PORT = int(os.getenv("PORT", 3001))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _cors_origins():
    raw = os.getenv("CORS_ORIGINS")
    if raw:
        origins = [o.strip() for o in raw.split(",")]
    else:
        origins = [
            os.getenv("FRONTEND_URL", "http://localhost:3000"),
            os.getenv("MOBILE_APP_URL", "http://localhost:3002"),
        ]
    origins.append(os.getenv("NGROK_URL"))
    return [o for o in origins if o]


CORS_ORIGINS = _cors_origins()

# Share of an order's total paid to the courier who delivers it
COURIER_REWARD_RATE = float(os.getenv("COURIER_REWARD_RATE", 0.2))

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 10))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))
