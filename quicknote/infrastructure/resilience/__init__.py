"""API Resilience Implementations.

Tracks per-token rate limit state learned from response headers and 429
responses, and decides whether new requests may be sent.
Bounded Context: API Resilience
"""
