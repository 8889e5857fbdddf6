"""HTTP trigger for scheduled check runs."""

from .app import create_app, main

__all__ = ["create_app", "main"]
