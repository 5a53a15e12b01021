"""HTTP server exposing node-scoped logical topology snapshots.

Routes::

    GET /healthz
    GET /readyz
    GET /api/v1/snapshots/{node_name}

With a live collector configured, snapshots are probed at request time and
the file store is only consulted when live collection fails.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from ovnrecon.models import (
    Snapshot,
    SnapshotWarning,
    SourceHealth,
    WarningCode,
    dump_snapshot,
    format_rfc3339,
)
from ovnrecon.probe.deadline import Deadline
from ovnrecon.probe.errors import ProbeError
from ovnrecon.snapshot.store import FileStore, SnapshotNotFoundError, SnapshotStoreError

logger = logging.getLogger("ovnrecon.server")

HEADER_GENERATED_AT = "X-OVN-Recon-Snapshot-Generated-At"
HEADER_SOURCE_HEALTH = "X-OVN-Recon-Snapshot-Source-Health"
HEADER_NODE_NAME = "X-OVN-Recon-Snapshot-Node-Name"


class LiveCollector(Protocol):
    def collect(self, node_name: str, deadline: Optional[Deadline] = None) -> Snapshot:
        ...


def create_app(
    store: FileStore,
    live_collector: Optional[LiveCollector] = None,
    probe_timeout: Optional[float] = None,
) -> FastAPI:
    """Build the collector API around a file store and optional live collector.

    *probe_timeout* bounds each live collection (seconds); ``None`` means no limit.
    """
    app = FastAPI(title="ovn-recon collector")

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz() -> str:
        return "ok"

    @app.get("/readyz", response_class=PlainTextResponse)
    def readyz() -> str:
        return "ok"

    @app.get("/api/v1/snapshots")
    @app.get("/api/v1/snapshots/")
    def missing_node_name() -> None:
        raise HTTPException(status_code=400, detail="missing or invalid node name")

    # Sync handler: FastAPI runs it in the threadpool, one collection per request.
    @app.get("/api/v1/snapshots/{node_name}")
    def get_snapshot(node_name: str) -> JSONResponse:
        node_name = node_name.strip()
        if not node_name:
            raise HTTPException(status_code=400, detail="missing or invalid node name")

        if live_collector is not None:
            logger.info("logical topology snapshot requested node=%s", node_name)
            try:
                return _snapshot_response(live_collector.collect(node_name, Deadline(probe_timeout)), node_name)
            except ProbeError as probe_exc:
                logger.warning(
                    "live OVN probe failed; falling back to file snapshot node=%s error=%s",
                    node_name, probe_exc,
                )
                payload = _load_from_store(store, node_name)
                payload = append_fallback_warning(payload, node_name, probe_exc)
                payload.metadata.source_health = SourceHealth.degraded
                return _snapshot_response(payload, node_name)

        return _snapshot_response(_load_from_store(store, node_name), node_name)

    return app


def append_fallback_warning(payload: Snapshot, node_name: str, probe_exc: Exception) -> Snapshot:
    """Record a live-probe failure on a fallback snapshot, at most once."""
    warning = SnapshotWarning(
        code=WarningCode.live_probe_failed,
        message=f"Live probe collection failed for node {node_name}: {probe_exc}",
    )
    if any(w.code == warning.code and w.message == warning.message for w in payload.warnings):
        return payload
    payload.warnings.append(warning)
    return payload


def _load_from_store(store: FileStore, node_name: str) -> Snapshot:
    try:
        return store.get_by_node(node_name)
    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail="snapshot not found")
    except SnapshotStoreError as exc:
        logger.error("failed to read snapshot node=%s error=%s", node_name, exc)
        raise HTTPException(status_code=500, detail=f"failed to load snapshot: {exc}")


def _snapshot_response(payload: Snapshot, node_name: str) -> JSONResponse:
    if not payload.metadata.node_name:
        payload.metadata.node_name = node_name

    headers = {
        "Cache-Control": "no-store",
        # Whole seconds in the header; the body keeps full precision.
        HEADER_GENERATED_AT: format_rfc3339(payload.metadata.generated_at.replace(microsecond=0)),
        HEADER_SOURCE_HEALTH: payload.metadata.source_health.value,
        HEADER_NODE_NAME: payload.metadata.node_name,
    }
    return JSONResponse(content=dump_snapshot(payload), headers=headers)
