"""
Politique de retry pour les accès base de données.
- Ne rejoue que les erreurs transitoires d'épuisement du pool de connexions.
- Backoff exponentiel borné avec jitter, nombre de tentatives fixe (3 par défaut).
- Toute autre erreur remonte immédiatement.
"""
import logging
import random
import time
from typing import Callable, Optional, TypeVar

import httpx
from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Codes/messages Postgres & PgBouncer typiques d'un pool saturé
_TRANSIENT_CODES = {"53300", "57P03"}
_TRANSIENT_MARKERS = (
    "too many connections",
    "remaining connection slots",
    "connection pool",
    "max client connections",
    "timed out fetching a new connection",
)

def is_transient_pool_error(exc: BaseException) -> bool:
    """Vrai si l'exception signale un pool de connexions saturé (rejouable)."""
    if isinstance(exc, httpx.PoolTimeout):
        return True
    if isinstance(exc, APIError) and str(getattr(exc, "code", "") or "") in _TRANSIENT_CODES:
        return True
    message = str(getattr(exc, "message", "") or exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)

def backoff_delay(attempt: int, base_delay: float = 0.2, max_delay: float = 2.0) -> float:
    # attempt commence à 0
    return min(max_delay, base_delay * (2 ** attempt)) * random.uniform(0.5, 1.0)

def with_db_retry(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 2.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Exécute fn() avec au plus `attempts` tentatives.
    - Erreur transitoire: attend backoff_delay(n) puis recommence.
    - Dernière tentative ou erreur non transitoire: l'exception d'origine est relancée.
    """
    for attempt in range(attempts):
        try:
            return fn()
        except Exception as exc:
            if attempt + 1 >= attempts or not is_transient_pool_error(exc):
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning("infra.retry transient db error attempt=%s delay=%.2fs error=%s", attempt + 1, delay, exc)
            (sleep or time.sleep)(delay)
    raise RuntimeError("with_db_retry: attempts must be >= 1")
