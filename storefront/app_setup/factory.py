"""
Construction de l'application vitrine (storefront.asgi, tests).
Ordre: session/CORS/hôtes, no-cache, gestionnaires d'erreurs, routers.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_session_middlewares, register_no_cache_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    App FastAPI de la vitrine:
      - panier de session, checkout Razorpay, commandes client
      - API admin (statuts, remboursements) et health
    """
    app = FastAPI(title="Storefront Checkout", version="0.1.0", lifespan=lifespan)
    register_session_middlewares(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
