"""Serve the ledger API.

Usage:
    python -m bank_ledger
"""

import uvicorn

from .app.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "bank_ledger.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )
