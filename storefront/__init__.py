"""
Backend de la boutique eSIM voyage: tarification, checkout Stripe, réconciliation des commandes
et livraison des eSIM.
"""
__version__ = "1.0.0"
