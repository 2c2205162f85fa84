"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the Notion REST API, the
config file, the terminal) by implementing the interfaces defined in the
domain layer.
"""
