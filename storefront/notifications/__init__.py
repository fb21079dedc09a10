"""
Module 'notifications': emails transactionnels (Resend).
"""
