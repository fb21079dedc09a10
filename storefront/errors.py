"""
Taxonomie d'erreurs de la boutique.
- Chaque erreur porte un status_code HTTP et un message sûr pour le client.
- Le handler global (app_setup.exceptions) les transforme en {"error": message}.
"""
from typing import Optional


class StorefrontError(Exception):
    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """Entrée client invalide (corrigeable par l'utilisateur)."""
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(StorefrontError):
    """Entité du catalogue ou commande introuvable."""
    status_code = 404
    default_message = "Not found"


class ConfigurationError(StorefrontError):
    """Trou de configuration côté opérateur (ex: price id manquant pour le mode courant)."""
    status_code = 400
    default_message = "Configuration missing"


class CheckoutError(StorefrontError):
    """Échec générique de création de session: aucun détail interne n'est exposé."""
    status_code = 500
    default_message = "Failed to create checkout session"


class ExternalServiceError(StorefrontError):
    """Appel Stripe / eSIM Go / Resend / Google en échec."""
    status_code = 502
    default_message = "External service error"


class PersistenceError(StorefrontError):
    """Écriture base de données en échec après épuisement des tentatives."""
    status_code = 500
    default_message = "Database error"
