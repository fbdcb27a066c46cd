"""ESI adapter: HTTP client and payload schemas.

Bounded Context: Upstream Catalog API
"""
