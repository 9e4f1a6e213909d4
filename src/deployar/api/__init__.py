"""
deployar HTTP API.

Usage::

    uvicorn deployar.api:create_app --factory --port 3029

or ``deployar serve``.
"""

from deployar.api.app import create_app

__all__ = ["create_app"]
