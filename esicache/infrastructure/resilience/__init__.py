"""API Resilience Implementations.

Contains the ESI error-budget governor and the bounded-concurrency batch
executor used by every catalog sync.
Bounded Context: API Resilience
"""
