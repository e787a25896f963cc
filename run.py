"""Entry point: `python run.py` or `uvicorn run:app`."""

import uvicorn

from crm.app import app
from crm.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "run:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
