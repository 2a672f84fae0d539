"""
Hiérarchie d'exceptions de l'API.

Chaque erreur porte son status HTTP; le handler global de main.py
les rend en {"error": "<message>"}.

- Authentification (401) / autorisation (403)
- Validation d'entrée (400) / ressource absente (404)
- Dépendances amont: store ou API tierce (500), quota (402), rate limit (429)

Les opérations best-effort (tracking, historique de prix) ne lèvent jamais
ces erreurs vers l'appelant.
"""
from typing import Optional


class RelayError(Exception):
    """Exception de base pour toutes les erreurs exposées par l'API."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message)


# =============================================================================
# AUTH
# =============================================================================

class AuthenticationError(RelayError):
    """Token absent ou invalide."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(RelayError):
    """Authentifié mais sans le rôle requis."""

    status_code = 403

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


# =============================================================================
# ENTRÉES
# =============================================================================

class ValidationError(RelayError):
    """Champ requis manquant ou invalide."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(RelayError):
    """Ressource non trouvée (404)."""

    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


# =============================================================================
# DÉPENDANCES AMONT
# =============================================================================

class UpstreamError(RelayError):
    """Échec du store ou d'une API tierce."""

    status_code = 500


class RateLimitError(RelayError):
    """Rate limit atteint (local ou amont)."""

    status_code = 429

    def __init__(self, message: str = "Too many requests. Please try again later.", retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(message)


class QuotaExceededError(RelayError):
    """Crédits de l'API amont épuisés."""

    status_code = 402

    def __init__(self, message: str = "AI credits depleted. Please add credits to continue."):
        super().__init__(message)
