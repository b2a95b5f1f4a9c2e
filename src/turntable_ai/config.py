"""Application configuration and constants"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Public URL of this deployment, used for redirects and for calling our own routes
SITE_URL = (
    os.getenv("SITE_URL")
    or os.getenv("APP_BASE_URL")
    or "http://localhost:8000"
).rstrip("/")

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'turntable.db'}")

# LLM
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL_NAME = os.getenv("GROQ_MODEL_NAME", "llama-3.3-70b-versatile")

# Google sign-in (login client)
GOOGLE_LOGIN_CLIENT_ID = os.getenv("GOOGLE_LOGIN_CLIENT_ID")
GOOGLE_LOGIN_CLIENT_SECRET = os.getenv("GOOGLE_LOGIN_CLIENT_SECRET")
GOOGLE_LOGIN_REDIRECT = os.getenv("GOOGLE_LOGIN_REDIRECT", f"{SITE_URL}/auth/callback")
LOGIN_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Google Business Profile (integrations client)
GOOGLE_INTEGRATIONS_CLIENT_ID = os.getenv("GOOGLE_INTEGRATIONS_CLIENT_ID")
GOOGLE_INTEGRATIONS_CLIENT_SECRET = os.getenv("GOOGLE_INTEGRATIONS_CLIENT_SECRET")
GOOGLE_INTEGRATIONS_REDIRECT = os.getenv(
    "GOOGLE_INTEGRATIONS_REDIRECT", f"{SITE_URL}/api/google/auth/callback"
)
INTEGRATIONS_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/business.manage",
]

# Gmail inbox used for Yelp review alert mail
GMAIL_YELP_CLIENT_ID = os.getenv("GMAIL_YELP_CLIENT_ID")
GMAIL_YELP_CLIENT_SECRET = os.getenv("GMAIL_YELP_CLIENT_SECRET")
GMAIL_YELP_REDIRECT_URI = os.getenv(
    "GMAIL_YELP_REDIRECT_URI", f"{SITE_URL}/api/gmail/yelp/callback"
)
GMAIL_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"

# Transactional email
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
ALERT_FROM_EMAIL = os.getenv("ALERT_FROM_EMAIL", "TurnTable AI <alerts@example.com>")

# Billing
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# Cron
CRON_SECRET = os.getenv("CRON_SECRET")
CRON_POLL_ATTEMPTS = 3
CRON_POLL_BACKOFF_SECONDS = float(os.getenv("CRON_POLL_BACKOFF_SECONDS", "2"))

# Review polling
REVIEW_PAGE_SIZE = 20
POLL_EMAIL_DELAY_SECONDS = 0.2

# Rate limiting for /api/*
RATE_LIMIT_WINDOW_SECONDS = 10
RATE_LIMIT_MAX_REQUESTS = 8

# Sessions
SESSION_TTL_HOURS = 24

# KPI alert thresholds (percent)
KPI_ALERT_LABOR_PCT = float(os.getenv("KPI_ALERT_LABOR_PCT", "35"))
KPI_ALERT_GROSS_MARGIN_PCT = float(os.getenv("KPI_ALERT_GROSS_MARGIN_PCT", "60"))
KPI_ALERT_REFUND_PCT = float(os.getenv("KPI_ALERT_REFUND_PCT", "5"))

# Security
MAX_REVIEW_LENGTH = 8000
MAX_REPLY_LENGTH = 5000

# CORS Origins
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{SITE_URL},http://localhost:3000").split(",")
    if origin.strip()
]

# Google may hand back a wider scope set than requested (include_granted_scopes)
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
