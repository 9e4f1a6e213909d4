"""Saved command templates and their store."""

from deployar.catalog.models import CommandTemplate
from deployar.catalog.store import CommandCatalog, validate_template

__all__ = ["CommandCatalog", "CommandTemplate", "validate_template"]
