"""Configuration: application settings and the persisted user configuration."""
