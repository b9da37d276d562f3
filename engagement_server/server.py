#!/usr/bin/env python3
"""
Engagement & Recommendations server: entrypoint for uvicorn engagement_server.server:app.

For uvicorn engagement_server:app use engagement_server/__init__.py.
"""

from .app import app

if __name__ == "__main__":
    import uvicorn

    from .config import get_config

    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
