"""quicknote: capture short notes and append them to a Notion page.

The package is split into a domain layer (models, events, interfaces),
an infrastructure layer (HTTP, rate limiting, caching, configuration, CLI
rendering) and a core layer (application services and command handling).
"""

__version__ = "1.0.0"
