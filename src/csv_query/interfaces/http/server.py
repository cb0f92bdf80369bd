"""
Read-only HTTP query API over the imported table.

One endpoint:
 - GET /?<column>=<value>[&<column>=<value>...]

Every query parameter becomes an equality condition and all conditions must
hold. Responses are JSON: an array of records on success, a JSON string with
the error message otherwise (400 for bad filters and query errors, 500 when
a result row cannot be read).
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from csv_query.app import AppContext
from csv_query.core.errors import QueryError, RowDecodeError
from csv_query.core.query import build_filter, materialize_result

logger = logging.getLogger(__name__)


class IndentedJSONResponse(JSONResponse):
    """JSON response rendered with indentation and unescaped unicode."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=4).encode("utf-8")


def handle_query(request: Request) -> Response:
    context: AppContext = request.app.state.context
    params = request.query_params.multi_items()

    try:
        flt = build_filter(params, context.schema.columns)
    except QueryError as e:
        logger.info("Rejected query %s: %s", request.url.query, e)
        return JSONResponse(str(e), status_code=400)

    statement = flt.select_sql()
    with context.store.reader() as conn:
        try:
            columns, cursor = context.store.query(conn, statement, flt.args)
        except sqlite3.Error as e:
            logger.warning("Could not query for data: %s; command: %s", e, statement)
            return JSONResponse(str(e), status_code=400)

        try:
            data = materialize_result(columns, cursor, numeric=context.settings.numeric)
        except RowDecodeError as e:
            logger.error("Error reading the results: %s; command: %s", e, statement)
            return JSONResponse(str(e), status_code=500)
        finally:
            cursor.close()

    return IndentedJSONResponse(data)


def create_app(context: AppContext) -> Starlette:
    """Build the Starlette application serving ``context``."""
    app = Starlette(
        routes=[Route("/", handle_query, methods=["GET"])],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "HEAD", "OPTIONS"],
                allow_headers=["*"],
            )
        ],
    )
    app.state.context = context
    return app


def serve(context: AppContext) -> None:
    """Serve ``context`` until interrupted, then close the store."""
    import uvicorn

    settings = context.settings
    logger.info("*** Starting HTTP server ***")
    logger.info("Listening on %s:%d", settings.host, settings.port)
    config = uvicorn.Config(
        create_app(context),
        host=settings.host,
        port=int(settings.port),
        log_level=logging.getLogger().getEffectiveLevel(),
        timeout_graceful_shutdown=math.ceil(settings.shutdown_timeout),
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    finally:
        logger.info("*** Shutting down ***")
        context.close()


__all__ = ["IndentedJSONResponse", "handle_query", "create_app", "serve"]
