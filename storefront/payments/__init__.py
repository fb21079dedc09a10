"""
Module 'payments': création de sessions Stripe Checkout et réception des webhooks.
"""
