"""
Factory d’application pour les entrypoints (unishift.app, unishift.asgi).
Ordonne les étapes d’initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l’app FastAPI avec le lifespan et enregistre:
      - middlewares de base et en-têtes de sécurité
      - gestionnaires d’exceptions (enveloppe JSON)
      - route racine et routers (parcels, payments, users, health)
    """
    app = FastAPI(title="Unishift API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    def root():
        return {"success": True, "message": "Unishift API is live"}

    register_routers(app)
    return app
