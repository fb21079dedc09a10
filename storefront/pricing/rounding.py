"""
Arrondi « customer-friendly » des prix publics.
- Devises à décimales: terminaisons .49 / .99 (arrondi vers le bas).
- IDR: palier de 1000 tronqué puis +900 (ex: 149 312 -> 149 900).
"""
import math

# module storefront.pricing.rounding
ZERO_DECIMAL_CURRENCIES = {"IDR"}

_CURRENCY_SYMBOLS = {
    "AUD": "$",
    "USD": "$",
    "SGD": "S$",
    "GBP": "£",
    "MYR": "RM",
    "IDR": "Rp",
}

def round_to_friendly_price(price: float, currency: str) -> float:
    """
    Arrondit un prix brut vers une terminaison commerciale.
    - IDR: floor(price / 1000) * 1000 + 900. Le résultat peut dépasser l'entrée
      (149 000 -> 149 900): comportement assumé de la grille tarifaire.
    - Autres devises, selon la partie décimale d:
      d < 0.49 -> (entier - 0.01), ou 0.49 si l'entier vaut 0
      0.49 <= d < 0.99 -> entier + 0.49
      d >= 0.99 -> entier + 0.99
    Fonction pure, définie pour tout prix fini >= 0.
    """
    if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES:
        thousands = math.floor(price / 1000)
        return float(thousands * 1000 + 900)

    integer_part = math.floor(price)
    # Bruit binaire: 15.49 - 15 vaut 0.49000000000000021
    decimal = round(price - integer_part, 9)

    if decimal < 0.49:
        if integer_part > 0:
            return round(integer_part - 0.01, 2)
        return 0.49
    if decimal < 0.99:
        return round(integer_part + 0.49, 2)
    return round(integer_part + 0.99, 2)

def format_price(price: float, currency: str) -> str:
    """Affichage: IDR sans décimales avec séparateur '.', sinon deux décimales."""
    if (currency or "").upper() == "IDR":
        return f"{int(round(price)):,}".replace(",", ".")
    return f"{price:.2f}"

def get_currency_symbol(currency: str) -> str:
    return _CURRENCY_SYMBOLS.get((currency or "").upper(), "$")
