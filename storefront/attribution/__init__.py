"""
Module 'attribution': remontée serveur des achats (Google Ads, GA4).
Best-effort: aucune erreur ne remonte à l'appelant.
"""
