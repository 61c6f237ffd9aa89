"""
Application settings and configuration
"""
import os
import json
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: list) -> list:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = json.loads(raw)
    except ValueError:
        value = [item.strip() for item in raw.split(",")]
    return [str(item) for item in value if str(item)]


class Settings:
    # Application
    APP_NAME = "Samarpan Sahayog Abhiyan"
    VERSION = "1.0.0"
    DEBUG = os.getenv("DEBUG", "True") == "True"

    # CORS
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Pagination
    MAX_PAGE_SIZE = 100

    # Donations
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")
    TIMEZONE = os.getenv("TIMEZONE", "Asia/Kolkata")

    # Commission rules (percent of the original donation amount)
    VOLUNTEER_PERSONAL_COMMISSION = float(os.getenv("VOLUNTEER_PERSONAL_COMMISSION", "0"))
    VOLUNTEER_PARENT_COMMISSION = float(os.getenv("VOLUNTEER_PARENT_COMMISSION", "5"))
    NON_VOLUNTEER_COMMISSION = float(os.getenv("NON_VOLUNTEER_COMMISSION", "15"))
    HIERARCHY_COMMISSION = float(os.getenv("HIERARCHY_COMMISSION", "2"))
    VOLUNTEER_ROLES = _env_list("VOLUNTEER_ROLES", ["VOLUNTEER"])

    # Hierarchy traversal
    MAX_HIERARCHY_DEPTH = int(os.getenv("MAX_HIERARCHY_DEPTH", "20"))
    # Non-persisted account id used by the demo admin login; never a real ancestor
    SYNTHETIC_ROOT_ID = os.getenv("SYNTHETIC_ROOT_ID", "demo-admin")

    # Ledger
    RECENT_COMMISSIONS_LIMIT = 10
    UNDISTRIBUTED_DONATIONS_LIMIT = 50

settings = Settings()
