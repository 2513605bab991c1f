"""
Storefront core: catalog querying and cart aggregation.

Architecture:
    Caller (request handling, identity) → Service (business rules) → Repository (tenant-scoped store access) → Model
"""
