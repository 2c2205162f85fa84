"""In-process delivery of domain events."""
