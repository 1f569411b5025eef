import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./stylemate.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Persistence Gateway (client side)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5000/api")

# Guest cart storage key (one Redis key per device: "<key>:<device_id>")
GUEST_CART_KEY = os.getenv("GUEST_CART_KEY", "stylemate_guest_cart")

# Money - all amounts are integers in minor units (paisa for INR)
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
CURRENCY_DISPLAY_DECIMALS = int(os.getenv("CURRENCY_DISPLAY_DECIMALS", "0"))
TAX_RATE_PERCENT = int(os.getenv("TAX_RATE_PERCENT", "18"))  # GST
DELIVERY_CHARGE_IN_PAISA = int(os.getenv("DELIVERY_CHARGE_IN_PAISA", "0"))  # free delivery
MAX_CART_ITEM_QUANTITY = int(os.getenv("MAX_CART_ITEM_QUANTITY", "10"))

# Scheduling
RESCHEDULE_WINDOW_DAYS = int(os.getenv("RESCHEDULE_WINDOW_DAYS", "60"))
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))
DEFAULT_OPENING_TIME = os.getenv("DEFAULT_OPENING_TIME", "09:00")
DEFAULT_CLOSING_TIME = os.getenv("DEFAULT_CLOSING_TIME", "20:00")
# Client-side debounce before fetching slots for a newly selected date
SLOT_FETCH_DEBOUNCE_MS = int(os.getenv("SLOT_FETCH_DEBOUNCE_MS", "0"))

# Cache TTLs (seconds)
APPOINTMENTS_CACHE_TTL = int(os.getenv("APPOINTMENTS_CACHE_TTL", "300"))
