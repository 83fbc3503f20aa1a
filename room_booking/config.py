# config.py
import os
from dotenv import load_dotenv

load_dotenv()

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./room_booking.db")

# Token signing
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "false").lower() in {"1", "true", "yes"}

# Booking limits
BOOKINGS_PAGE_LIMIT_MAX = int(os.getenv("BOOKINGS_PAGE_LIMIT_MAX", 100))
PURPOSE_MAX_LENGTH = int(os.getenv("PURPOSE_MAX_LENGTH", 200))
