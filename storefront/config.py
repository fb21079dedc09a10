# storefront.config
from dataclasses import dataclass
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, eSIM Go, Resend, Google Ads, GA4)
- Fournit StoreSettings: le mode test/live est une valeur explicite passée aux services,
  jamais un drapeau global lu au moment de l'appel
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URL et clés (anon/service)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Sécurité / hôtes
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
ADMIN_API_KEY = _clean_env(os.getenv("ADMIN_API_KEY") or "")

# Stripe: clés live et test (sélectionnées par StoreSettings)
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
TEST_STRIPE_SECRET_KEY = _clean_env(os.getenv("TEST_STRIPE_SECRET_KEY") or "")
TEST_STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("TEST_STRIPE_WEBHOOK_SECRET") or "")

# eSIM Go (provisioning)
ESIMGO_API_KEY = _clean_env(os.getenv("ESIMGO_API_KEY") or "")
ESIMGO_API_BASE = _clean_env(os.getenv("ESIMGO_API_BASE") or "https://api.esim-go.com/v2.5").rstrip("/")

# Resend (emails transactionnels)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Trvel <noreply@e.trvel.co>")

# Attribution publicitaire (Google Ads + GA4 Measurement Protocol)
GA4_MEASUREMENT_ID = _clean_env(os.getenv("GA4_MEASUREMENT_ID") or "")
GA4_API_SECRET = _clean_env(os.getenv("GA4_API_SECRET") or "")
GOOGLE_ADS_CUSTOMER_ID = _clean_env(os.getenv("GOOGLE_ADS_CUSTOMER_ID") or "")
GOOGLE_ADS_LOGIN_CUSTOMER_ID = _clean_env(os.getenv("GOOGLE_ADS_LOGIN_CUSTOMER_ID") or "")
GOOGLE_ADS_CONVERSION_ACTION_ID = _clean_env(os.getenv("GOOGLE_ADS_CONVERSION_ACTION_ID") or "")
GOOGLE_ADS_DEVELOPER_TOKEN = _clean_env(os.getenv("GOOGLE_ADS_DEVELOPER_TOKEN") or "")
GOOGLE_ADS_CLIENT_ID = _clean_env(os.getenv("GOOGLE_ADS_CLIENT_ID") or "")
GOOGLE_ADS_CLIENT_SECRET = _clean_env(os.getenv("GOOGLE_ADS_CLIENT_SECRET") or "")
GOOGLE_ADS_REFRESH_TOKEN = _clean_env(os.getenv("GOOGLE_ADS_REFRESH_TOKEN") or "")

# URLs publiques et locale par défaut
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:3000").rstrip("/")
DEFAULT_LOCALE = _clean_env(os.getenv("DEFAULT_LOCALE") or "en-au")


@dataclass(frozen=True)
class StoreSettings:
    """
    Réglages d'exécution injectés dans les services (checkout, réconciliation).
    - test_mode: sélectionne les price ids Stripe de test et le mode "validate" côté eSIM Go
    - les clés Stripe sont déjà résolues pour le mode courant
    """
    test_mode: bool = False
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    base_url: str = "http://localhost:3000"
    esim_api_key: str = ""
    esim_api_base: str = "https://api.esim-go.com/v2.5"

    @property
    def mode(self) -> str:
        return "test" if self.test_mode else "live"

    @property
    def esim_order_type(self) -> str:
        # "validate" ne débite pas le compte eSIM Go
        return "validate" if self.test_mode else "transaction"


def get_settings() -> StoreSettings:
    """
    Construit StoreSettings depuis l'environnement courant.
    - TEST_MODE=true: clés Stripe TEST_* et provisioning en mode validate
    """
    test_mode = _env_flag("TEST_MODE")
    return StoreSettings(
        test_mode=test_mode,
        stripe_secret_key=TEST_STRIPE_SECRET_KEY if test_mode else STRIPE_SECRET_KEY,
        stripe_webhook_secret=TEST_STRIPE_WEBHOOK_SECRET if test_mode else STRIPE_WEBHOOK_SECRET,
        base_url=BASE_URL,
        esim_api_key=ESIMGO_API_KEY,
        esim_api_base=ESIMGO_API_BASE,
    )
