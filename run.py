import os
import sys

import uvicorn

from agentic_rag.core.config import settings

# Fix Windows console encoding (stdout only: tqdm, used by
# sentence_transformers, flushes stderr and a reconfigured stderr
# raises OSError [Errno 22] on Windows).
if os.name == "nt":
    os.environ["PYTHONIOENCODING"] = "utf-8"
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

if __name__ == "__main__":
    uvicorn.run(
        "agentic_rag.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",  # Only reload in development
        log_level="info" if settings.environment == "development" else "warning",
    )
