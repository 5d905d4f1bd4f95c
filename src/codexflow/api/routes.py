"""API router — generation endpoints, API key checks, rendering, history."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from codexflow import config
from codexflow.agent.orchestrator import DiagramOrchestrator, GenerationResult, require_text
from codexflow.agent.provider import mask_api_key, validate_api_key
from codexflow.diagrams.render import RenderOptions, apply_render_options, embed_html
from codexflow.diagrams.sequence import basic_sequence_graph
from codexflow.diagrams.synthesizer import BASIC_FLOWCHART, basic_flowchart_graph
from codexflow.errors import InputError
from codexflow.storage.history_store import HistoryStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_orchestrator() -> DiagramOrchestrator:
    """A fresh orchestrator per request; nothing is shared across requests."""
    return DiagramOrchestrator()


def _get_history_store() -> HistoryStore:
    return HistoryStore(config.HISTORY_DB_PATH, max_items=config.HISTORY_MAX_ITEMS)


async def _read_json(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise InputError("Invalid request body. Please provide valid JSON.") from e
    if not isinstance(body, dict):
        raise InputError("Invalid request body. Please provide a JSON object.")
    return body


def _optional_str(body: dict[str, Any], key: str) -> str | None:
    value = body.get(key)
    if value is not None and not isinstance(value, str):
        raise InputError(f"{key} must be a string")
    return value or None


async def _generate(
    request: Request,
    label: str,
    response_key: str,
    run: Callable[[DiagramOrchestrator, dict[str, Any]], GenerationResult],
    minimal: Callable[[], Any],
) -> JSONResponse:
    """Shared handler: 400 on bad input, fallback on AI failure, minimal diagram on anything else."""
    try:
        body = await _read_json(request)
    except InputError as e:
        logger.warning("POST %s rejected: %s", label, e)
        return JSONResponse({"error": str(e)}, status_code=400)

    logger.info("POST %s", label)
    t0 = time.perf_counter()
    try:
        result = await run_in_threadpool(run, _get_orchestrator(), body)
    except InputError as e:
        logger.warning("POST %s rejected: %s", label, e)
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.exception("POST %s failed after %.2fs", label, time.perf_counter() - t0)
        result = GenerationResult(
            minimal(),
            error=f"Failed to process request: {e}. Using basic diagram as fallback.",
        )
    logger.info(
        "POST %s complete in %.2fs%s",
        label, time.perf_counter() - t0, " (fallback)" if result.used_fallback else "",
    )
    return JSONResponse(result.to_response(response_key))


# ── Generation ──


@router.post("/generate-diagram")
async def generate_diagram(request: Request):
    """Code to Mermaid flowchart, sequence or class diagram."""
    def run(orchestrator: DiagramOrchestrator, body: dict[str, Any]) -> GenerationResult:
        return orchestrator.generate_diagram(
            body.get("code"),
            language=_optional_str(body, "language"),
            diagram_type=_optional_str(body, "diagramType"),
        )

    return await _generate(request, "/generate-diagram", "diagram", run, lambda: BASIC_FLOWCHART)


@router.post("/generate-json-flowchart")
async def generate_json_flowchart(request: Request):
    """Code to a ``{nodes, edges}`` flowchart."""
    def run(orchestrator: DiagramOrchestrator, body: dict[str, Any]) -> GenerationResult:
        return orchestrator.generate_json_flowchart(
            body.get("code"), language=_optional_str(body, "language"),
        )

    return await _generate(
        request, "/generate-json-flowchart", "flowchartData", run,
        lambda: basic_flowchart_graph().to_dict(),
    )


@router.post("/generate-sequence")
async def generate_sequence(request: Request):
    """Ideas to a sequence graph via the participants/sequence schema."""
    def run(orchestrator: DiagramOrchestrator, body: dict[str, Any]) -> GenerationResult:
        return orchestrator.generate_sequence(body.get("ideas"))

    return await _generate(
        request, "/generate-sequence", "flowchartData", run,
        lambda: basic_sequence_graph().to_dict(),
    )


@router.post("/generate-dataflow")
async def generate_dataflow(request: Request):
    """Ideas to a sequence graph, AI emitting nodes/edges directly."""
    def run(orchestrator: DiagramOrchestrator, body: dict[str, Any]) -> GenerationResult:
        return orchestrator.generate_dataflow(body.get("ideas"))

    return await _generate(
        request, "/generate-dataflow", "flowchartData", run,
        lambda: basic_sequence_graph().to_dict(),
    )


# ── API key ──


@router.get("/check-api-key")
def check_api_key():
    """Whether a provider key is configured; masked preview outside production."""
    api_key = config.GOOGLE_API_KEY
    is_configured = bool(api_key and api_key.strip())
    body: dict[str, Any] = {"isConfigured": is_configured}
    if not config.is_production():
        body["maskedKey"] = mask_api_key(api_key) if is_configured else ""
    return body


@router.post("/update-api-key")
async def update_api_key(request: Request):
    """Validate a candidate key with a test request. The key is not persisted."""
    try:
        body = await _read_json(request)
        api_key = require_text(body.get("apiKey"), "API key is required")
    except InputError as e:
        return JSONResponse({"success": False, "error": str(e)}, status_code=400)

    if not await run_in_threadpool(validate_api_key, api_key.strip()):
        return JSONResponse(
            {"success": False, "error": "Invalid API key. Please check your API key and try again."},
            status_code=400,
        )
    return {
        "success": True,
        "message": "API key validated successfully. Set GOOGLE_API_KEY in the server environment to use it.",
    }


# ── Rendering ──


@router.post("/render-diagram")
async def render_diagram(request: Request):
    """Apply theme/direction/font size to Mermaid text and build an embed snippet."""
    try:
        body = await _read_json(request)
        diagram = require_text(body.get("diagram"), "Diagram is required")
        font_size = body.get("fontSize", 14)
        if not isinstance(font_size, int) or isinstance(font_size, bool):
            raise InputError("fontSize must be an integer")
        options = RenderOptions(
            theme=_optional_str(body, "theme") or "default",
            direction=_optional_str(body, "direction") or "TD",
            font_size=font_size,
        )
    except (InputError, ValueError) as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    rendered = apply_render_options(diagram, options)
    return {"diagram": rendered, "embedHtml": embed_html(rendered)}


# ── History ──


class HistoryCreateRequest(BaseModel):
    code: str
    language: str = "javascript"
    diagramType: str = "flowchart"
    diagram: Any


@router.get("/history")
def list_history():
    store = _get_history_store()
    try:
        return [item.to_dict() for item in store.items()]
    finally:
        store.close()


@router.post("/history")
def add_history(req: HistoryCreateRequest):
    store = _get_history_store()
    try:
        item = store.add(req.code, req.language, req.diagramType, req.diagram)
        logger.info("History item %s added (%s)", item.id, req.diagramType)
        return item.to_dict()
    finally:
        store.close()


@router.get("/history/{item_id}")
def restore_history(item_id: str):
    store = _get_history_store()
    try:
        item = store.restore(item_id)
    finally:
        store.close()
    if item is None:
        raise HTTPException(status_code=404, detail=f"History item {item_id} not found")
    return item.to_dict()


@router.delete("/history/{item_id}")
def remove_history(item_id: str):
    store = _get_history_store()
    try:
        removed = store.remove(item_id)
    finally:
        store.close()
    if not removed:
        raise HTTPException(status_code=404, detail=f"History item {item_id} not found")
    return {"deleted": True}


@router.delete("/history")
def clear_history():
    store = _get_history_store()
    try:
        store.clear()
    finally:
        store.close()
    return {"cleared": True}
