"""
Common utilities shared by the state-sync packages.

Modules:
- codec: default JSON codec used for tracked fields without custom conversion
- env: environment-variable helpers for configuration
"""

__all__ = [
    "codec",
    "env",
]
