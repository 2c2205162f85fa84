"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like credentials, page ids and note
text, giving call sites semantic clarity while remaining plain strings at
runtime.
"""

from typing import NewType

# === Credentials ===
Credential = NewType("Credential", str)      # Notion integration token (never logged)

# === Pages ===
PageId = NewType("PageId", str)              # Notion page/block id
PageTitle = NewType("PageTitle", str)        # Human readable page title

# === Notes ===
NoteText = NewType("NoteText", str)          # Raw note text typed by the user
