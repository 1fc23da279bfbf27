import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./elderflow.db")

# Security - CRITICAL: No default JWT secret in production
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Stripe webhook signing secret (whsec_...). Verification is skipped when unset.
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# Billing
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
# Sent invoices whose period ended more than this many days ago are reported as overdue
OVERDUE_AFTER_DAYS = int(os.getenv("OVERDUE_AFTER_DAYS", "14"))
# Admin mark-paid leaves draft invoices in draft unless this is enabled.
# The Stripe webhook always promotes a partially paid draft to sent.
MARK_PAID_PROMOTES_DRAFT = os.getenv("MARK_PAID_PROMOTES_DRAFT", "false").lower() == "true"
