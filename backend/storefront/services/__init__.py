"""
Storefront services: domain services plus shared pricing helpers.
"""
