"""
Email countdown timer service package.

This module marks the 'src.api' directory as a Python package and exposes
the FastAPI app instance for convenience imports if desired.
"""

# Expose FastAPI app at package level (optional import path: src.api.app)
from .main import app  # noqa: F401
