"""
Numéros de commande lisibles: TRV-<YYYYMMDD>-<séquence sur 3 chiffres>.
La séquence repart à 001 chaque jour (UTC).
"""
from datetime import date, datetime, timezone
from typing import Optional, Union

ORDER_PREFIX = "TRV"

def order_number_prefix(day: Union[date, datetime, None] = None) -> str:
    day = day or datetime.now(timezone.utc)
    return f"{ORDER_PREFIX}-{day.strftime('%Y%m%d')}-"

def next_order_number(day: Union[date, datetime, None] = None, last_order_number: Optional[str] = None) -> str:
    """
    Numéro suivant pour le jour donné.
    - last_order_number: plus grand numéro existant avec le même préfixe (None si aucun)
    Ex: (2025-12-29, None) -> "TRV-20251229-001"; (2025-12-29, "TRV-20251229-041") -> "TRV-20251229-042"
    """
    prefix = order_number_prefix(day)
    next_num = 1
    if last_order_number and last_order_number.startswith(prefix):
        try:
            next_num = int(last_order_number[len(prefix):]) + 1
        except ValueError:
            next_num = 1
    return f"{prefix}{next_num:03d}"
