"""Notion API adapter.

Wire format, response parsing and the rate-limit aware API client.
"""
