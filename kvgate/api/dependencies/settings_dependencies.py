"""
Settings dependency for API routes and middleware.

create_app() stores the Settings it was built with on ``app.state``; the
module-level instance is only the fallback for apps assembled by hand.
"""

from fastapi import Request

from kvgate.core.config.settings import Settings, settings


def get_app_settings(request: Request) -> Settings:
    """Get the Settings the running application was created with."""
    return getattr(request.app.state, "settings", None) or settings
