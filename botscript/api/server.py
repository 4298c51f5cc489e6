"""
Bot Script Builder — FastAPI Server
REST surface the visual canvas calls: graph mutations, snapshot import/export,
the compiled bot document, and the node type catalogue.
"""

import logging
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from botscript.config.settings import settings
from botscript.errors import NotFoundError, GraphIntegrityError
from botscript.compiler.emitter import dumps_json
from botscript.session import EditorSession

logger = logging.getLogger(__name__)


# ── Global Instances ──────────────────────────────────────────────────────────

session = EditorSession()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"[API] Bot Script Builder starting (env={settings.environment}, root={session.root_id})")
    yield


app = FastAPI(
    title="Bot Script Builder",
    description="Graph store and compiler for visual bot scripts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Models ────────────────────────────────────────────────────────────

class AddNodeRequest(BaseModel):
    type: str
    data: Optional[Dict[str, Any]] = None
    position: Optional[Dict[str, float]] = None


class UpdateNodeRequest(BaseModel):
    data: Optional[Dict[str, Any]] = None
    position: Optional[Dict[str, float]] = None


class ConnectRequest(BaseModel):
    source: str
    target: str


class CompileRequest(BaseModel):
    root_id: Optional[str] = None


class GraphSnapshotRequest(BaseModel):
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


def _json_response(payload: Any) -> Response:
    # Compiled documents nest too deeply for jsonable_encoder; encode them up front.
    return Response(content=dumps_json(payload), media_type="application/json")


def _mutation_response(**extra: Any) -> Response:
    result = session.last_result
    return _json_response({
        **extra,
        "document": session.document,
        "warnings": result.warnings if result else [],
        "errors": result.errors if result else [],
    })


# ── System ────────────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "environment": settings.environment,
        "nodes": len(session.store),
        "edges": len(session.store.edges),
        "compile_count": session.compile_count,
    }


# ── Graph ─────────────────────────────────────────────────────────────────────

@app.get("/graph")
async def get_graph():
    return session.store.snapshot()


@app.put("/graph")
async def replace_graph(req: GraphSnapshotRequest):
    """Replace the whole graph from a canvas export."""
    try:
        session.load_snapshot(req.model_dump())
    except GraphIntegrityError as e:
        raise HTTPException(400, {"errors": e.errors})
    return _mutation_response(status="loaded")


@app.post("/nodes")
async def add_node(req: AddNodeRequest):
    node_id = session.add_node(req.type, req.data, req.position)
    return _mutation_response(node_id=node_id)


@app.post("/nodes/{node_id}/copy")
async def copy_node(node_id: str):
    try:
        new_id = session.copy_node(node_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return _mutation_response(node_id=new_id)


@app.patch("/nodes/{node_id}")
async def update_node(node_id: str, req: UpdateNodeRequest):
    try:
        session.update_node(node_id, data=req.data, position=req.position)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return _mutation_response(node=session.store.get_node(node_id).to_canvas())


@app.delete("/nodes/{node_id}")
async def delete_node(node_id: str):
    session.delete_node(node_id)
    return _mutation_response(status="deleted")


@app.post("/edges")
async def connect(req: ConnectRequest):
    try:
        edge_id = session.connect(req.source, req.target)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return _mutation_response(edge_id=edge_id)


@app.delete("/edges/{edge_id}")
async def delete_edge(edge_id: str):
    session.delete_edge(edge_id)
    return _mutation_response(status="deleted")


# ── Compiled Document ─────────────────────────────────────────────────────────

@app.get("/document")
async def get_document():
    """Compiled bot document from the latest mutation."""
    if session.document is None:
        raise HTTPException(409, {"errors": session.last_result.errors})
    return _json_response(session.document)


@app.get("/document/outline")
async def get_outline():
    return {"root_id": session.root_id, "lines": session.outline()}


@app.post("/compile")
async def compile_graph(req: CompileRequest):
    """Compile on demand, optionally from a different root. The session root is unchanged."""
    root_id = req.root_id or session.root_id
    result = session.compiler.build(session.store.nodes, session.store.edges, root_id)
    payload = result.model_dump(mode="json", exclude={"document"})
    payload["document"] = result.document
    return _json_response(payload)


@app.get("/node-types")
async def list_node_types():
    registry = session.compiler.registry
    return {
        "types": [s.model_dump(mode="json") for s in registry.list_types()],
        "aliases": registry.aliases(),
    }
