"""
API Module for the Opportunity Update Assistant.

FastAPI application with routes for:
- Natural-language opportunity updates
- Stage-gate evaluation
- Prospect scoring
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
