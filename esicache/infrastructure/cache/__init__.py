"""Catalog Cache Implementation.

Provides the diskcache-backed CatalogCache tables and the sync sentinel.
Bounded Context: Cache Management
"""
