from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from kielcleanup.api.middleware import RequestLogMiddleware
from kielcleanup.api.models import ApiError, NormalizeOut, PrefixOut, ReportOut
from kielcleanup.core.config import ENV_CONFIG_PATH, ENV_LOG_LEVEL, CleanupConfig, load_config
from kielcleanup.core.errors import RecordStoreError
from kielcleanup.core.images import resolve_image_prefix
from kielcleanup.core.normalization import normalize_record
from kielcleanup.core.record import XmlRecordStore

log = logging.getLogger("kielcleanup.api")


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the API service."""

    config_path: Optional[Path] = None
    max_upload_bytes: int = 5 * 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def create_app(*, config_path: Optional[str] = None) -> FastAPI:
    """Create the FastAPI app.

    The cleanup config is read once at startup from `config_path` or
    $KIELCLEANUP_CONFIG; without either an empty config is used.
    """

    path = config_path or os.environ.get(ENV_CONFIG_PATH) or None
    cfg = ServiceConfig(
        config_path=Path(path) if path else None,
        max_upload_bytes=_env_int("KIELCLEANUP_MAX_UPLOAD_BYTES", 5 * 1024 * 1024),
    )
    cleanup_config = load_config(cfg.config_path) if cfg.config_path else CleanupConfig()

    log.setLevel(os.environ.get(ENV_LOG_LEVEL, "INFO").upper())

    app = FastAPI(title="kielcleanup API", version="0.1")
    app.state.cfg = cfg
    app.state.cleanup_config = cleanup_config

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(RecordStoreError)
    async def record_store_error(_request: Request, exc: RecordStoreError) -> JSONResponse:
        body = ApiError(error="invalid_record", detail=str(exc))
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "config": str(cfg.config_path) if cfg.config_path else None}

    @app.get("/image-prefix", response_model=PrefixOut)
    def image_prefix(unit_id: str) -> PrefixOut:
        prefix = resolve_image_prefix(unit_id)
        return PrefixOut(unit_id=unit_id, prefix=prefix, resolved=bool(prefix))

    def _save_upload_to_temp(upload: UploadFile) -> Path:
        """Write an upload to a private temp dir, enforcing the size limit."""

        tmpdir = Path(tempfile.mkdtemp(prefix="kielcleanup_api_"))
        out = tmpdir / "record.xml"
        total = 0
        with out.open("wb") as f:
            while True:
                chunk = upload.file.read(1024 * 1024)
                if not chunk:
                    break
                total += len(chunk)
                if total > cfg.max_upload_bytes:
                    shutil.rmtree(tmpdir, ignore_errors=True)
                    raise HTTPException(status_code=413, detail="upload_too_large")
                f.write(chunk)
        return out

    @app.post("/normalize", response_model=NormalizeOut, responses={400: {"model": ApiError}})
    def normalize(file: UploadFile = File(...)) -> NormalizeOut:
        """Normalize an uploaded record document.

        The upload is not kept; nothing is written to the host record store.
        """

        path = _save_upload_to_temp(file)
        try:
            record, report = normalize_record(XmlRecordStore(path).load(), app.state.cleanup_config)
        finally:
            shutil.rmtree(path.parent, ignore_errors=True)

        snap = record.snapshot()
        return NormalizeOut(
            record_id=snap["record_id"],
            doc_type=snap["doc_type"],
            fields=snap["fields"],
            entities=snap["entities"],
            report=ReportOut(**report.to_dict()),
        )

    return app
