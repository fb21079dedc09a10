"""
Module 'orders': réconciliation des paiements Stripe en commandes eSIM.
"""
