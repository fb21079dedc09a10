"""
Module 'admin': opérations de support sur les commandes (Bearer ADMIN_API_KEY).
"""
