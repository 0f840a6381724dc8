"""
Registre central des routers.
- API: parcels, payments (checkout + vérification + consultation), users
- Health: health_router
"""
from fastapi import FastAPI
from unishift.parcels.views import router as parcels_router
from unishift.payments.views import router as payments_router
from unishift.users.views import router as users_router
from unishift.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    app.include_router(parcels_router)
    app.include_router(payments_router)
    app.include_router(users_router)
    # Health & monitoring
    app.include_router(health_router)
