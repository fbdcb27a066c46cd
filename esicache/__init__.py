"""esicache: a durable local mirror of the EVE ESI market catalog.

Resolves market group definitions and item names through a rate-governed,
batched ESI client and keeps them in an on-disk cache.
"""

__version__ = "0.1.0"
