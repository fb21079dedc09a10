"""
Gestionnaires d'exceptions utilisés par la factory.
- StorefrontError (et sous-classes): {"error": message} avec le status_code de l'erreur.
- RequestValidationError (pydantic): 400 {"error": "<champ>: <raison>"}.
- HTTPException: corps FastAPI standard {"detail": ...}.
- Toute autre exception: 500 {"error": "Internal server error"}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import StorefrontError

logger = logging.getLogger(__name__)

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc)
    msg = first.get("msg") or "invalid value"
    return f"{field}: {msg}" if field else msg

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("app.error path=%s status=%s error=%s", request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        # Erreur inattendue (Supabase, bug...): message générique, détail dans les logs
        logger.exception("app.unhandled path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
