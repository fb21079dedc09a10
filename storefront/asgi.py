"""
ASGI entrypoint: expose `app` pour uvicorn / gunicorn (storefront.asgi:app).
Toute la configuration FastAPI est centralisée dans storefront.app_setup.create_app.
"""
from storefront.app_setup import create_app

app = create_app()
