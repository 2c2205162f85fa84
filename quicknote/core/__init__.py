"""Core Layer: application services and command orchestration."""
