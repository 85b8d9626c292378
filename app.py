#!/usr/bin/env python3
"""
Interop FastAPI App
HTTP wrapper around the import/export service and its module registry.
"""

import logging
import os
import threading
from functools import lru_cache
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from converters import (
    ConverterLoadError,
    FileSystemItem,
    InteropError,
    ModuleNotFound,
    ModuleType,
    OutputFormat,
)
from services import (
    DestinationNotFound,
    ExportOptions,
    FormatUnspecified,
    ImportOptions,
    InteropService,
    SourceNotFound,
    create_service,
    default_settings,
)

app = FastAPI(
    title="Interop API",
    description="Import and export items through pluggable converter modules",
    version="1.0.0"
)

settings = default_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Runs share one store and must not overlap
run_lock = threading.Lock()

# Enable CORS for cross-origin usage (e.g., accessing API from other devices)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ImportRequest(BaseModel):
    path: str
    format: str = "auto"
    destination_container_id: Optional[str] = None
    output_format: Optional[OutputFormat] = None
    implementation_path: Optional[str] = None


class ExportRequest(BaseModel):
    path: str
    format: str = Field(default_factory=lambda: settings.export_format)
    source_container_ids: List[str] = Field(default_factory=list)
    source_document_ids: List[str] = Field(default_factory=list)
    target: Optional[FileSystemItem] = None
    implementation_path: Optional[str] = None


@lru_cache(maxsize=1)
def get_service() -> InteropService:
    """
    Build the shared service from the configured snapshot store.

    Returns:
        InteropService: service bound to the snapshot store
    """
    return create_service(settings)


def persist(service: InteropService) -> None:
    """Write the store back to its snapshot file when it supports it."""
    save_snapshot = getattr(service.store, "save_snapshot", None)
    if save_snapshot is not None:
        save_snapshot(settings.store_path)


def raise_http_error(exc: Exception):
    if isinstance(exc, (SourceNotFound, DestinationNotFound)):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, (FormatUnspecified, ModuleNotFound)):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, ConverterLoadError):
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(exc, InteropError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.exception("Unexpected error during run")
    raise HTTPException(status_code=500, detail="Unexpected error during run") from exc


@app.get("/info")
def get_info(service: InteropService = Depends(get_service)):
    """Get item counts and storage locations."""
    counts = service.store.counts() if hasattr(service.store, "counts") else {}
    return {
        "store_path": str(settings.store_path),
        "attachments_dir": str(settings.attachments_dir),
        "items": counts,
    }


@app.get("/modules")
def get_modules(type: Optional[ModuleType] = None, service: InteropService = Depends(get_service)):
    """List registered importer and exporter modules."""
    modules = []
    for module in service.resolver.registry.modules():
        if type is not None and module.type != type:
            continue
        entry = module.as_dict()
        entry["available"] = service.resolver.is_available(module)
        modules.append(entry)
    return {"modules": modules}


@app.post("/import")
def import_items(request: ImportRequest, service: InteropService = Depends(get_service)):
    """
    Import items from a file or directory on the server.

    Returns:
        JSON response with the run warnings
    """
    options = ImportOptions(**request.model_dump())
    with run_lock:
        try:
            result = service.import_items(options)
        except Exception as exc:
            raise_http_error(exc)
        persist(service)

    logger.info("Import complete for %s (%d warnings)", request.path, len(result.warnings))
    return {"success": True, "warnings": result.warnings}


@app.post("/export")
def export_items(request: ExportRequest, service: InteropService = Depends(get_service)):
    """
    Export items to a file or directory on the server.

    Returns:
        JSON response with the run warnings
    """
    options = ExportOptions(**request.model_dump())
    with run_lock:
        try:
            result = service.export_items(options)
        except Exception as exc:
            raise_http_error(exc)

    logger.info("Export complete for %s (%d warnings)", request.path, len(result.warnings))
    return {"success": True, "warnings": result.warnings}


if __name__ == "__main__":
    host = os.environ.get("HOST", "0.0.0.0")
    try:
        port = int(os.environ.get("PORT", "8000"))
    except ValueError:
        port = 8000

    print("="*60)
    print("Interop FastAPI Server")
    print("="*60)
    print(f"Store: {settings.store_path}")
    print(f"Attachments: {settings.attachments_dir}")
    print("="*60)
    print(f"\nStarting server on http://{host}:{port}")
    print("="*60 + "\n")

    uvicorn.run(app, host=host, port=port)
