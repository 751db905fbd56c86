"""
Configuration et utilitaires partagés
"""

import os
import hashlib
import uuid
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'crm_platform')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Self URL (vendor simulator and receipt callback go through HTTP)
BACKEND_URL = os.environ.get('BACKEND_URL', 'http://localhost:8001').rstrip('/')
VENDOR_SEND_URL = os.environ.get('VENDOR_SEND_URL', f"{BACKEND_URL}/api/vender/send")
RECEIPT_URL = os.environ.get('RECEIPT_URL', f"{BACKEND_URL}/api/campaign/receipt")

# Text generation (Gemini generateContent)
GEMINI_API_URL = os.environ.get(
    'GEMINI_API_URL',
    'https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent'
)
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
GENERATION_TIMEOUT_SECONDS = float(os.environ.get('GENERATION_TIMEOUT_SECONDS', '30'))

# Vendor simulator
VENDOR_SUCCESS_RATE = float(os.environ.get('VENDOR_SUCCESS_RATE', '0.9'))
VENDOR_DELAY_SECONDS = float(os.environ.get('VENDOR_DELAY_SECONDS', '1.0'))

# Campaigns
CAMPAIGN_MESSAGE_MODE = os.environ.get('CAMPAIGN_MESSAGE_MODE', 'ai').strip().lower()
DISPATCH_CONCURRENCY = max(1, int(os.environ.get('DISPATCH_CONCURRENCY', '1')))

# Receipts
RECEIPT_STRICT_TRANSITIONS = _env_bool('RECEIPT_STRICT_TRANSITIONS', False)
PENDING_TIMEOUT_SECONDS = int(os.environ.get('PENDING_TIMEOUT_SECONDS', '0'))
PENDING_SWEEP_INTERVAL_SECONDS = int(os.environ.get('PENDING_SWEEP_INTERVAL_SECONDS', '60'))

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== HELPERS ====================

def hash_password(password: str) -> str:
    """Hash un mot de passe avec SHA256"""
    return hashlib.sha256(password.encode()).hexdigest()

def new_id() -> str:
    """Identifiant de document (UUID4, stocké dans _id)"""
    return str(uuid.uuid4())

def utc_now() -> datetime:
    """Date/heure courante en UTC naïf, comme BSON la restitue"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_js_iso(value: datetime) -> str:
    """Format Date.toISOString(): 2024-01-31T08:15:00.000Z"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"

def parse_iso_datetime(value: str) -> datetime:
    """
    Parse une date ISO-8601 (avec Z, offset ou date seule).
    Retourne un datetime UTC naïf. ValueError si invalide.
    """
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
