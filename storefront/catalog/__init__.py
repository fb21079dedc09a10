"""
Module 'catalog': forfaits par destination/locale (lecture seule).
"""
