"""
deepproxy Data Models

Path-subscription data models built on the deep proxy.
"""

from deepproxy.database.model import (
    Database,
    Model,
    ModelError,
    get_database,
    modelize,
    reset_database,
)

__all__ = [
    "Database",
    "Model",
    "ModelError",
    "get_database",
    "modelize",
    "reset_database",
]
