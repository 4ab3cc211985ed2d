from __future__ import annotations
from dotenv import load_dotenv

load_dotenv()

import logging, os, re

from decimal import Decimal
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from .filters import Filter, FilterError, encode_filter, parse_all, render_filter_docs
from .query import build_select_from_filters
from .registry import Registry

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
log = logging.getLogger("api")

app = FastAPI(title="qfilter", version="1.0.0")

origins_raw = os.getenv("CORS_ALLOW_ORIGINS", "")
origins = [o.strip() for o in origins_raw.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

REG = Registry()


def _to_snake(name: str) -> str:
    """
    Convert camelCase string to snake_case.
    Example: 'developmentAreaId' -> 'development_area_id'
    """
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    return re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1).lower()


def _convert_camel_to_snake(filters: List[Filter]) -> List[Filter]:
    return [
        Filter(field=_to_snake(f.field), operation=f.operation, value=f.value, type=f.type)
        for f in filters
    ]


def _assert_columns_allowed(entity: str, cols: List[str], entry) -> None:
    for c in cols:
        if c != "*" and c.upper() not in entry["columns"]:
            raise ValueError(f"Column not allowed for {entity}: {c}")


@app.on_event("startup")
def _startup():
    REG.load_entities()


@app.get("/healthz")
def health():
    return {"ok": True, "entities": list(REG.entities.keys())}


@app.get("/entities")
def list_entities(include_columns: bool = True):
    out = []
    for name, entry in REG.entities.items():
        item = {"entity": name, "view": entry["view"], "loadedAt": entry["loadedAt"]}
        if include_columns:
            item["columns"] = [
                {"name": col, "type": spec.column_type.value, "members": list(spec.enum_members)}
                for col, spec in entry["columns"].items()
            ]
        out.append(item)
    return {"entities": out}


@app.post("/reload")
def reload_registry():
    try:
        summary = REG.refresh_all()
        return {"reloaded": summary}
    except Exception as e:
        log.exception("Reload failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/filters/docs")
def filter_docs():
    return Response(content=render_filter_docs(), media_type="text/markdown")


@app.get("/filters/parse")
def parse_filters(filter: Optional[List[str]] = Query(None)):
    try:
        parsed = parse_all(filter)
    except FilterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "filters": [f.to_dict() for f in parsed],
        "encoded": [encode_filter(f) for f in parsed],
    }


@app.get("/sql")
def build_query(
    entity: str,
    filter: Optional[List[str]] = Query(None),
    columns: Optional[List[str]] = Query(None),
    paramstyle: str = "pyformat",
    quote_identifiers: bool = False,
    distinct: bool = False,
    include_count: bool = False,
    is_camel_case: bool = False,
):
    try:
        filters = parse_all(filter)

        # Convert camelCase property names to snake_case if requested
        if is_camel_case:
            filters = _convert_camel_to_snake(filters)

        entry = REG.ensure_entity(entity)
        _assert_columns_allowed(entity, columns or [], entry)
        resolver = REG.resolver_for(entity, quote_identifiers=quote_identifiers)

        res = build_select_from_filters(
            entry["view"],
            filters,
            resolver,
            columns=columns,
            paramstyle=paramstyle,
            quote_identifiers=quote_identifiers,
            distinct=distinct,
            include_count=include_count,
        )
        return jsonable_encoder({
            "sql": res.sql,
            "params": res.params,
            "countSql": res.count_sql,
            "countParams": res.count_params,
            "mappedView": entry["view"],
            "filters": [encode_filter(f) for f in res.filters],
        }, custom_encoder={Decimal: str})
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
