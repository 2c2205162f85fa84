"""Domain Layer: models, events and interfaces.

Holds no I/O. Infrastructure adapters implement the interfaces declared here.
"""
