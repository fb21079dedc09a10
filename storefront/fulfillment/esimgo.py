"""
Client eSIM Go (API v2.5) et provisioning d'une eSIM pour une commande.
- mode "validate": commande simulée, aucun débit (TEST_MODE)
- mode "transaction": commande réelle
Le QR d'installation est la chaîne LPA:1$<adresse SM-DP+>$<matching id>.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import httpx

from storefront.errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

def generate_qr_code_string(smdp_address: str, matching_id: str) -> str:
    return f"LPA:1${smdp_address}${matching_id}"


@dataclass
class ProvisionedEsim:
    iccid: str
    smdp_address: Optional[str] = None
    matching_id: Optional[str] = None
    order_reference: Optional[str] = None

    @property
    def qr_code(self) -> Optional[str]:
        # Sans adresse + matching id, pas de QR installable
        if self.smdp_address and self.matching_id:
            return generate_qr_code_string(self.smdp_address, self.matching_id)
        return None


def extract_esim(response: Dict[str, Any]) -> Optional[ProvisionedEsim]:
    """
    Lit la première eSIM d'une réponse de commande.
    - order[0].esims[0]: {iccid, smdpAddress, matchingId}
    - sinon order[0].iccids[0] (ICCID seul, credentials à récupérer plus tard)
    Retourne None si aucune eSIM n'est présente.
    """
    items = (response or {}).get("order") or []
    if not items:
        return None
    item = items[0] or {}
    reference = response.get("orderReference")

    esims = item.get("esims") or []
    if esims and esims[0].get("iccid"):
        first = esims[0]
        return ProvisionedEsim(
            iccid=first["iccid"],
            smdp_address=first.get("smdpAddress"),
            matching_id=first.get("matchingId"),
            order_reference=reference,
        )
    iccids = item.get("iccids") or []
    if iccids:
        return ProvisionedEsim(iccid=iccids[0], order_reference=reference)
    return None


class EsimGoClient:
    """
    Client HTTP eSIM Go (httpx, en-tête X-API-Key).
    """

    def __init__(self, api_key: str, base_url: str = "https://api.esim-go.com/v2.5", timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        if not self.api_key:
            raise ConfigurationError("ESIMGO_API_KEY not configured")
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"X-API-Key": self.api_key, "Content-Type": "application/json"},
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
            detail = body.get("message") or body.get("error") or "Unknown error"
        except ValueError:
            detail = response.text or "Unknown error"
        logger.error("fulfillment.esimgo request failed status=%s detail=%s", response.status_code, detail)
        raise ExternalServiceError(f"eSIM Go API error: {response.status_code} - {detail}")

    def create_order(self, bundle_name: str, order_reference: str, mode: str) -> Dict[str, Any]:
        """
        POST /orders pour un bundle, avec assignation immédiate de l'eSIM.
        - mode: "validate" | "transaction"
        """
        payload = {
            "type": mode,
            "assign": True,
            "Order": [{"type": "bundle", "quantity": 1, "item": bundle_name}],
        }
        logger.info("fulfillment.esimgo create_order mode=%s bundle=%s reference=%s", mode, bundle_name, order_reference)
        try:
            with self._client() as client:
                response = client.post("/orders", json=payload)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"eSIM Go request failed: {e}")
        self._raise_for_status(response)
        return response.json()

    def get_assignment(self, order_reference: str) -> Optional[Dict[str, Any]]:
        """
        Détails d'assignation (iccid, smdpAddress, matchingId) par référence de commande, None si 404.
        """
        try:
            with self._client() as client:
                response = client.get("/esims/assignments", params={"reference": order_reference})
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"eSIM Go request failed: {e}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        data = response.json()
        if isinstance(data, list):
            return data[0] if data else None
        return data or None


class EsimProvisioner:
    """
    Provisioning d'une eSIM pour une commande payée.
    Si la commande ne renvoie qu'un ICCID, les credentials sont relus via /esims/assignments.
    """

    def __init__(self, client: EsimGoClient):
        self.client = client

    def provision(self, bundle_name: str, order_reference: str, mode: str) -> ProvisionedEsim:
        response = self.client.create_order(bundle_name, order_reference, mode)
        esim = extract_esim(response)
        if esim is None:
            raise ExternalServiceError("Failed to get eSIM details from provider")

        if esim.qr_code is None:
            reference = esim.order_reference or order_reference
            assignment = self.client.get_assignment(reference)
            if assignment:
                esim.smdp_address = assignment.get("smdpAddress") or esim.smdp_address
                esim.matching_id = assignment.get("matchingId") or esim.matching_id
        if esim.order_reference is None:
            esim.order_reference = order_reference
        logger.info(
            "fulfillment.esimgo provisioned iccid=%s reference=%s has_qr=%s",
            esim.iccid, esim.order_reference, esim.qr_code is not None,
        )
        return esim
