"""Collaborator protocols shared by the DAL and the report pipeline."""

from .connector import Connector
from .content_store import ContentStore
from .panel_registry import PanelRegistry

__all__ = [
    "Connector",
    "ContentStore",
    "PanelRegistry",
]
