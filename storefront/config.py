# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de la vitrine (storefront).

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose l'URL du backend REST, la clé publique Razorpay
- Paramètres du widget de paiement (devise, nom de boutique, couleur)
- Sécurité cookies, CORS/hosts, secret de session
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Backend REST: source de vérité (paniers, commandes, paiements)
# - API_BASE_URL peut être fourni sans schéma: on préfixe en http:// si nécessaire
API_BASE_URL = _clean_env(os.getenv("API_BASE_URL") or os.getenv("NEXT_PUBLIC_API_URL") or "http://localhost:8000/api/v1")
if API_BASE_URL and not API_BASE_URL.startswith("http"):
    API_BASE_URL = "http://" + API_BASE_URL
API_BASE_URL = API_BASE_URL.rstrip("/")

try:
    API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
except ValueError:
    API_TIMEOUT_SECONDS = 10.0

# Razorpay: seule la clé publique transite par la vitrine (le secret reste au backend)
RAZORPAY_KEY_ID = _clean_env(os.getenv("RAZORPAY_KEY_ID") or os.getenv("NEXT_PUBLIC_RAZORPAY_KEY_ID") or "")

# Widget de paiement
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "INR").upper()
STORE_NAME = _clean_env(os.getenv("STORE_NAME") or "Runiche")
STORE_THEME_COLOR = _clean_env(os.getenv("STORE_THEME_COLOR") or "#6366f1")
CHECKOUT_METHODS = [m.strip() for m in os.getenv("CHECKOUT_METHODS", "upi,card,netbanking").split(",") if m.strip()]

# Cookies / Sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# URL publique de la vitrine (callbacks du widget)
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8080").rstrip("/")
