"""
Module 'fulfillment': provisioning des eSIM auprès d'eSIM Go.
"""
