# module storefront.payments.models
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutRequest(BaseModel):
    """
    Corps de POST /api/checkout.
    - destination/duration/locale: requis (vérifiés par le service pour un message {"error"} uniforme)
    - promoCode: code promo Stripe optionnel
    - gclid: identifiant de clic Google Ads capturé côté front
    """
    model_config = ConfigDict(populate_by_name=True)

    destination: Optional[str] = None
    duration: Optional[int] = None
    locale: Optional[str] = None
    promo_code: Optional[str] = Field(default=None, alias="promoCode")
    gclid: Optional[str] = None

    @field_validator("destination", "locale", "promo_code", "gclid")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class CheckoutResult(BaseModel):
    session_id: str
    url: str
