# ABOUTME: Routes module initialization.
# ABOUTME: Exports the public bulletin and service API route modules.

from ward_bulletin.web.routes import api, public

__all__ = ["api", "public"]
