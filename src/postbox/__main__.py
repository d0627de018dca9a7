"""
Serve the Postbox API.

Usage:
    python -m postbox
"""

import uvicorn

from postbox.config import settings

if __name__ == "__main__":
    uvicorn.run("postbox.main:app", host=settings.host, port=settings.port)
