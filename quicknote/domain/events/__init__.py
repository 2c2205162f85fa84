"""Domain Event definitions.

Represents significant occurrences within the domain that other parts
of the system (mainly the presentation layer) react to.
"""
