"""
Remote Options - option source server

Serves file listings used as remote combo options, e.g.
GET /internal/files?folder_path=checkpoints -> {"files": ["a.safetensors", ...]}
"""
import logging
from pathlib import Path
from typing import List, Optional, Set

from fastapi import FastAPI, HTTPException, Query

from config.settings import settings

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("remote_options.server")

APP_VERSION = "0.1.0"
APP_NAME = "Remote Options"

app = FastAPI(
    title=f"{APP_NAME} Server",
    description="Option lists for remote combo inputs",
    version=APP_VERSION,
)


def parse_extensions(raw: Optional[str]) -> Optional[Set[str]]:
    """Turn "safetensors,.ckpt" into {".safetensors", ".ckpt"}."""
    if not raw:
        return None
    extensions = set()
    for part in raw.split(","):
        part = part.strip().lower()
        if part:
            extensions.add(part if part.startswith(".") else f".{part}")
    return extensions or None


def list_folder_files(
    root: Path,
    folder_path: str,
    extensions: Optional[Set[str]] = None,
) -> List[str]:
    """
    List files below root/folder_path, sorted, as POSIX paths relative to that folder.

    Hidden files are skipped.

    Raises:
        HTTPException: 400 if folder_path escapes root, 404 if the folder does not exist
    """
    base = root.resolve()
    target = (base / folder_path).resolve()
    if target != base and base not in target.parents:
        raise HTTPException(status_code=400, detail="Invalid folder path")
    if not target.is_dir():
        raise HTTPException(status_code=404, detail=f"Unknown folder: {folder_path}")

    files = []
    for path in target.rglob("*"):
        if not path.is_file() or path.name.startswith("."):
            continue
        if extensions and path.suffix.lower() not in extensions:
            continue
        files.append(path.relative_to(target).as_posix())
    return sorted(files)


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "ok", "version": APP_VERSION}


@app.get("/internal/files")
def internal_files(
    folder_path: str = Query(..., min_length=1),
    extensions: Optional[str] = Query(None, description="Comma-separated extension filter"),
):
    """List files in a model folder."""
    allowed = parse_extensions(extensions) or parse_extensions(settings.file_extensions)
    files = list_folder_files(settings.models_directory, folder_path, allowed)
    logger.info(f"Listed {len(files)} files in {folder_path}")
    return {"files": files}
