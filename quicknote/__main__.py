"""Main entry point when executing quicknote as a package.

This allows running the package using python -m quicknote.
"""

from quicknote.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
