# module storefront.admin.security
import secrets

from fastapi import HTTPException, Request

from storefront import config

def require_admin(request: Request) -> None:
    """
    Vérifie l'en-tête Authorization: Bearer <ADMIN_API_KEY>.
    - Clé non configurée ou différente: 401 (comparaison à temps constant)
    """
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else ""
    expected = config.ADMIN_API_KEY
    if not expected or not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
