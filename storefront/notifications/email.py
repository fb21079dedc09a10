"""
Emails transactionnels via l'API HTTP Resend.
- render_esim_ready_email: sujet + HTML (template Jinja2) avec QR, instructions et récapitulatif
- ResendMailer.send_esim_ready: envoi, avec le QR en pièce jointe PNG (qrcode)
"""
import base64
import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
import qrcode
from jinja2 import Environment, PackageLoader, select_autoescape

from storefront.errors import ExternalServiceError, ValidationError
from storefront.pricing import ZERO_DECIMAL_CURRENCIES, format_price

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"

_env = Environment(
    loader=PackageLoader("storefront.notifications", "templates"),
    autoescape=select_autoescape(["html"]),
)

# module storefront.notifications.email
def format_amount_paid(amount_cents: Optional[int], currency: Optional[str]) -> str:
    """
    Montant affiché dans l'email.
    - 0 (code promo 100 %) -> "FREE"
    - sinon "<DEVISE> <montant>", ex: 1599 AUD -> "AUD 15.99", 14990000 IDR -> "IDR 149.900"
    """
    if not amount_cents:
        return "FREE"
    code = (currency or "AUD").upper()
    amount = amount_cents / 100
    if code in ZERO_DECIMAL_CURRENCIES:
        return f"{code} {format_price(amount, code)}"
    return f"{code} {amount:.2f}"

def qr_image_url(payload: str) -> str:
    return f"{QR_SERVICE_URL}?size=200x200&data={quote(payload, safe='')}"

def qr_png_base64(payload: str) -> str:
    """QR d'installation en PNG encodé base64 (pièce jointe)."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return base64.b64encode(buffered.getvalue()).decode("ascii")

def render_esim_ready_email(order: Any, first_name: Optional[str] = None) -> Tuple[str, str]:
    """
    Retourne (subject, html) pour une commande provisionnée.
    ValidationError si la commande n'a pas de QR.
    """
    if not order.esim_qr_code:
        raise ValidationError("No QR code to send - provision eSIM first")
    subject = f"Your {order.destination_name} eSIM is ready!"
    html = _env.get_template("esim_ready.html").render(
        order=order,
        first_name=first_name or "there",
        qr_payload=order.esim_qr_code,
        qr_image_url=qr_image_url(order.esim_qr_code),
        amount_paid=format_amount_paid(order.amount_cents, order.currency),
    )
    return subject, html


class ResendMailer:
    def __init__(self, api_key: str, sender: str, timeout: float = 15.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self._transport = transport

    def send(self, to: str, subject: str, html: str, attachments: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
        """
        POST https://api.resend.com/emails. Retour: {"id": "..."}.
        Erreur (clé absente, HTTP, réseau): ExternalServiceError.
        """
        if not self.api_key:
            raise ExternalServiceError("RESEND_API_KEY not configured")
        payload: Dict[str, Any] = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if attachments:
            payload["attachments"] = attachments
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Email request failed: {e}")
        if not response.is_success:
            logger.error("notifications.email send failed status=%s body=%s", response.status_code, response.text[:500])
            raise ExternalServiceError(f"Email provider error: {response.status_code}")
        return response.json()

    def send_esim_ready(self, order: Any, first_name: Optional[str] = None) -> Dict[str, Any]:
        if not order.customer_email:
            raise ValidationError("Order has no customer email")
        subject, html = render_esim_ready_email(order, first_name)
        attachments = [{"filename": f"{order.order_number}-esim-qr.png", "content": qr_png_base64(order.esim_qr_code)}]
        result = self.send(order.customer_email, subject, html, attachments)
        logger.info("notifications.email esim_ready sent order_number=%s id=%s", order.order_number, result.get("id"))
        return result
