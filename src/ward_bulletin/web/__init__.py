# ABOUTME: Web module for the public bulletin API.
# ABOUTME: Exposes the FastAPI application factory.

from ward_bulletin.web.app import create_app

__all__ = ["create_app"]
