# oracle_api/api/static.py
import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

logger = logging.getLogger(__name__)


def mount_client_bundle(app: FastAPI, static_dir: str) -> bool:
    """
    Serve the built client from `static_dir`, falling back to index.html
    for any unknown path so client-side routing works. API paths are never
    shadowed. Returns False when there is no bundle to serve.
    """
    root = Path(static_dir).resolve()
    index = root / "index.html"
    if not index.is_file():
        logger.warning(f"No client bundle at {root}, static serving disabled")
        return False

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_client(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)
        return FileResponse(index)

    logger.info(f"Serving client bundle from {root}")
    return True
