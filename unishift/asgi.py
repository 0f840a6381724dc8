"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe `unishift.asgi:app`.
- Toute la configuration FastAPI est centralisée dans unishift.app_setup.factory.
"""

from unishift.app import app
