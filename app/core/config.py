"""
Configuration - variables d'environnement.

Toutes les valeurs ont un défaut utilisable en développement local.
"""
import os

ENV = os.getenv("ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Base de données / Redis
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://relay:relay@db:5432/relay")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
ACCESS_TOKEN_MINUTES = int(os.getenv("ACCESS_TOKEN_MINUTES", "60"))

# Affiliation
DEFAULT_TRACKING_CODE = os.getenv("DEFAULT_TRACKING_CODE", "dealstream0f-20")

# URL publique de l'API (utilisée pour construire les URLs image-proxy)
PUBLIC_API_URL = os.getenv("PUBLIC_API_URL", "http://localhost:8000").rstrip("/")
SITE_URL = os.getenv("SITE_URL", "https://relaystation.app").rstrip("/")

# IA (posts sociaux)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
SOCIAL_POST_MODEL = os.getenv("SOCIAL_POST_MODEL", "claude-3-5-haiku-latest")

# Alertes (webhook Discord)
ALERT_WEBHOOK_URL = os.getenv("ALERT_WEBHOOK_URL", "")
STALE_AFTER_HOURS = float(os.getenv("STALE_AFTER_HOURS", "5"))
