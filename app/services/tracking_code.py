"""
Tracking code - Gestion du tag d'affiliation Amazon.

replace_tracking_code() ne lève jamais: toute URL relative, vide ou
malformée est renvoyée telle quelle.
"""
from typing import Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from app.core.config import DEFAULT_TRACKING_CODE

TRACKING_PARAM = "tag"

# Famille de domaines affiliés: tout hostname contenant ce marqueur
# (amazon.com, www.amazon.co.uk, smile.amazon.de...)
AFFILIATE_HOST_MARKER = "amazon."


def _is_absolute_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def is_affiliate_url(url: str) -> bool:
    """True si l'URL pointe vers un domaine du programme d'affiliation."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return False
    return bool(hostname and AFFILIATE_HOST_MARKER in hostname)


def replace_tracking_code(url: str, tracking_code: str = DEFAULT_TRACKING_CODE) -> str:
    """
    Pose ou remplace le tag d'affiliation sur une URL Amazon.

    Les autres paramètres gardent leur ordre; un tag dupliqué est réduit
    à une seule occurrence.
    """
    if not url or not _is_absolute_url(url):
        return url

    try:
        if not is_affiliate_url(url):
            return url

        parts = urlsplit(url)
        query = []
        replaced = False
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            if key == TRACKING_PARAM:
                if not replaced:
                    query.append((key, tracking_code))
                    replaced = True
                continue
            query.append((key, value))
        if not replaced:
            query.append((TRACKING_PARAM, tracking_code))

        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
    except ValueError:
        return url


def extract_tracking_code(url: str) -> Optional[str]:
    """Extrait le tag d'affiliation d'une URL, ou None."""
    try:
        parts = urlsplit(url)
    except (ValueError, TypeError, AttributeError):
        return None
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == TRACKING_PARAM:
            return value
    return None


def get_default_tracking_code() -> str:
    return DEFAULT_TRACKING_CODE
