from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    CreatedResponse,
    ErrorResponse,
    DeletedResponse,
    ImportResponse,
    MetaDatasetsResponse,
    RecordFormModel,
    YearFilterModel,
)
from emigration.aggregator import available_years
from emigration.config import Settings, configure_logging, load_settings
from emigration.datasets import get_dataset, list_datasets
from emigration.errors import CsvImportError, EmigrationError, StoreError, describe_store_error
from emigration.service import DatasetService
from emigration.store import DocumentStore, open_store

settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Emigration Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    return open_store(get_settings())


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    if isinstance(exc, EmigrationError):
        logger.warning("%s failed: %s", where, exc)
        content: Dict[str, Any] = {"error": str(exc), "type": type(exc).__name__}
        if isinstance(exc, StoreError):
            content["code"] = exc.code
            content["error"] = describe_store_error(exc)
        if isinstance(exc, CsvImportError):
            content["persisted"] = exc.persisted
            if exc.cause is not None:
                content["code"] = exc.cause.code
        return JSONResponse(status_code=exc.status_code, content=content)
    logger.exception("%s failed", where)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 403, 404, 409, 500, 502, 503)}


def _service(key: str, store: DocumentStore, settings: Settings) -> DatasetService:
    return DatasetService(store, get_dataset(key), settings)


@app.get("/meta/datasets", response_model=MetaDatasetsResponse)
def meta_datasets():
    return _json({"datasets": [d.to_dict() for d in list_datasets()]})


@app.get("/datasets/{key}/records", responses=ERROR_RESPONSES)
def list_records(key: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    try:
        return _json({"records": _service(key, store, settings).load()})
    except Exception as exc:
        return _error(exc, "list_records")


@app.get("/datasets/{key}/years", responses=ERROR_RESPONSES)
def list_years(key: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    try:
        return _json({"years": available_years(_service(key, store, settings).load())})
    except Exception as exc:
        return _error(exc, "list_years")


@app.post("/datasets/{key}/records", status_code=201, response_model=CreatedResponse, responses=ERROR_RESPONSES)
def create_record(
    key: str,
    form: RecordFormModel,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    try:
        doc_id = _service(key, store, settings).add(form.to_form())
        return _json({"id": doc_id}, status_code=201)
    except Exception as exc:
        return _error(exc, "create_record")


@app.put("/datasets/{key}/records/{record_id}", responses=ERROR_RESPONSES)
def update_record(
    key: str,
    record_id: str,
    form: RecordFormModel,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    try:
        record = _service(key, store, settings).update(record_id, form.to_form())
        return _json({"id": record_id, **record})
    except Exception as exc:
        return _error(exc, "update_record")


@app.delete("/datasets/{key}/records/{record_id}", response_model=DeletedResponse, responses=ERROR_RESPONSES)
def delete_record(key: str, record_id: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    try:
        _service(key, store, settings).delete(record_id)
        return _json({"deleted": record_id})
    except Exception as exc:
        return _error(exc, "delete_record")


@app.post("/datasets/{key}/import", response_model=ImportResponse, responses=ERROR_RESPONSES)
async def import_records(
    key: str,
    request: Request,
    filename: Optional[str] = Query(default=None),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    try:
        body = await request.body()
        service = _service(key, store, settings)
        # One store write per row; keep it off the event loop.
        result = await run_in_threadpool(service.import_csv, body, filename=filename)
        return _json({"persisted": result.persisted, "skipped": result.skipped, "ids": result.ids})
    except Exception as exc:
        return _error(exc, "import_records")


@app.post("/datasets/{key}/summary", responses=ERROR_RESPONSES)
def summary(
    key: str,
    year_filter: YearFilterModel,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    try:
        return _json(_service(key, store, settings).summary(year_filter.selected_year))
    except Exception as exc:
        return _error(exc, "summary")


@app.get("/export/{key}", responses=ERROR_RESPONSES)
def export_dataset(key: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    try:
        export_df = _service(key, store, settings).export_frame()
    except Exception as exc:
        return _error(exc, "export_dataset")
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={key}.csv"})
