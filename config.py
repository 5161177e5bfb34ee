"""Configuration for the CRM data layer, auth, and LLM orchestration."""
import os

from dotenv import load_dotenv

# Load environment variables from .env (including GEMINI_API_KEY, etc.)
load_dotenv()

# Path to the SQLite database and seed CSV (default: data/ under project root)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
DATABASE_PATH = os.environ.get("CRM_DB_PATH", os.path.join(DATA_DIR, "crm.db"))
OPPORTUNITY_CSV_PATH = os.environ.get(
    "CRM_OPPORTUNITY_CSV_PATH",
    os.path.join(DATA_DIR, "opportunities.csv"),
)

# Bearer tokens are signed with this key; override it outside local development.
SECRET_KEY = os.environ.get("CRM_SECRET_KEY", "dev-only-secret")
TOKEN_MAX_AGE = int(os.environ.get("CRM_TOKEN_MAX_AGE", str(7 * 24 * 60 * 60)))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Gemini / google-genai configuration
# AI features stay disabled (HTTP 503) until GEMINI_API_KEY is set.
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
GEMINI_MODEL_INSIGHT = os.environ.get("GEMINI_MODEL_INSIGHT", "gemini-2.5-flash")
GEMINI_MODEL_SUMMARY = os.environ.get("GEMINI_MODEL_SUMMARY", GEMINI_MODEL_INSIGHT)
# Per-request timeout for Gemini calls, in milliseconds.
GEMINI_TIMEOUT_MS = int(os.environ.get("GEMINI_TIMEOUT_MS", "30000"))
