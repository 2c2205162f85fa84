"""Caching Service Implementation.

Provides the single-slot TTL cache used for the page listing.
Bounded Context: Cache Management
"""
