"""Crawl session endpoints, with Server-Sent Events (SSE) streaming.

Routes
------
POST   /crawl                      Run a crawl and stream progress as SSE
POST   /crawl/sessions             Start a crawl in the background → session id
GET    /crawl/sessions             Most recent sessions
GET    /crawl/sessions/{id}        Session status, counters and artifacts
GET    /crawl/sessions/{id}/pages  Persisted page snapshots
DELETE /crawl/sessions/{id}        Cancel a running session

SSE event format
----------------
Each event is a JSON-encoded object on the ``data:`` line::

    data: {"event": "started", "session_id": "..."}

    data: {"event": "progress", "stage": "fetch", "progress_percent": 12, ...}

    data: {"event": "done", "success": true, "quality_score": 64, ...}

    data: {"event": "error", "detail": "..."}
"""

from __future__ import annotations

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from siteintel.db.artifacts import get_artifacts
from siteintel.db.sessions import get_session, list_pages, list_sessions
from siteintel.pipeline import CrawlPipeline, CrawlRequest, ProgressEvent, cancel_session

router = APIRouter()

# Shared thread pool for streamed crawls; the thread limit keeps concurrent
# sessions (and their fetch pools) in check.
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="crawl")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CrawlBody(BaseModel):
    entry_url: str = Field(min_length=1)
    platform_urls: dict[str, str] = Field(default_factory=dict)
    company_id: Optional[str] = None
    page_budget: Optional[int] = Field(default=None, ge=1)

    def to_request(self) -> CrawlRequest:
        return CrawlRequest(
            entry_url=self.entry_url,
            platform_urls=dict(self.platform_urls),
            company_id=self.company_id,
            page_budget=self.page_budget,
        )


# ---------------------------------------------------------------------------
# Dependencies / helpers
# ---------------------------------------------------------------------------

def get_pipeline(request: Request) -> CrawlPipeline:
    """The app's crawl pipeline (replace ``app.state.pipeline`` in tests)."""
    return request.app.state.pipeline


def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


def _start(pipeline: CrawlPipeline, body: CrawlBody) -> tuple[str, CrawlRequest]:
    crawl = body.to_request()
    try:
        return pipeline.start(crawl), crawl
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Background runner
# ---------------------------------------------------------------------------

def _run_session(
    pipeline: CrawlPipeline,
    session_id: str,
    crawl: CrawlRequest,
    queue: "asyncio.Queue[str | None]",
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Execute one session and push SSE-formatted strings into *queue*.

    Runs in a ThreadPoolExecutor.  Uses ``loop.call_soon_threadsafe`` to
    communicate back to the async event loop without blocking it.

    A ``None`` sentinel is enqueued when the thread finishes (success or
    error) so the async generator knows to stop.
    """
    def _put(payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, _sse(payload))

    def _on_progress(event: ProgressEvent) -> None:
        _put({"event": "progress", **event.to_dict()})

    try:
        outcome = pipeline.execute(session_id, crawl, on_progress=_on_progress)
        _put({"event": "done", **outcome.to_dict()})
    except Exception as exc:  # noqa: BLE001
        _put({"event": "error", "session_id": session_id, "detail": str(exc)})
    finally:
        loop.call_soon_threadsafe(queue.put_nowait, None)  # sentinel


async def _crawl_sse_generator(
    pipeline: CrawlPipeline,
    session_id: str,
    crawl: CrawlRequest,
) -> AsyncIterator[str]:
    """Yield SSE-formatted strings for the duration of a crawl session."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    yield _sse({"event": "started", "session_id": session_id})
    future = loop.run_in_executor(_executor, _run_session, pipeline, session_id, crawl, queue, loop)

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        # A client that went away mid-stream leaves the crawl running; later
        # events land in the orphaned queue.
        await asyncio.shield(future)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("")
async def crawl_stream(
    body: CrawlBody,
    pipeline: CrawlPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    """Run a crawl session and stream progress as SSE.

    The response is a ``text/event-stream`` where each ``data:`` line is a
    JSON object with an ``event`` field:

    - ``started``  — the new session id.
    - ``progress`` — one per pipeline progress event.
    - ``done``     — the session result (``success`` may be false).
    - ``error``    — an unexpected exception escaped the runner.
    """
    session_id, crawl = _start(pipeline, body)
    return StreamingResponse(
        _crawl_sse_generator(pipeline, session_id, crawl),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )


@router.post("/sessions", status_code=202, response_model=dict[str, Any])
def start_session_endpoint(
    body: CrawlBody,
    background: BackgroundTasks,
    pipeline: CrawlPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Start a crawl in the background and return its session id."""
    session_id, crawl = _start(pipeline, body)
    background.add_task(pipeline.execute, session_id, crawl)
    return {"session_id": session_id, "status": "running"}


@router.get("/sessions", response_model=list[dict[str, Any]])
def list_sessions_endpoint(request: Request, limit: int = 50) -> list[dict[str, Any]]:
    conn = request.app.state.db
    return [s.to_dict() for s in list_sessions(conn, limit=limit)]


@router.get("/sessions/{session_id}", response_model=dict[str, Any])
def get_session_endpoint(session_id: str, request: Request) -> dict[str, Any]:
    """Return a session's status and counters plus its persisted artifacts."""
    conn = request.app.state.db
    session = get_session(conn, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    return {**session.to_dict(), "artifacts": get_artifacts(conn, session_id)}


@router.get("/sessions/{session_id}/pages", response_model=list[dict[str, Any]])
def list_pages_endpoint(
    session_id: str,
    request: Request,
    include_html: bool = False,
) -> list[dict[str, Any]]:
    conn = request.app.state.db
    if get_session(conn, session_id) is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    return [p.to_dict(include_html=include_html) for p in list_pages(conn, session_id)]


@router.delete("/sessions/{session_id}", status_code=202, response_model=dict[str, Any])
def cancel_session_endpoint(session_id: str, request: Request) -> dict[str, Any]:
    """Request cancellation of a running session."""
    conn = request.app.state.db
    session = get_session(conn, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    if session.finished:
        raise HTTPException(status_code=409, detail=f"Session '{session_id}' is already {session.status}.")
    if not cancel_session(session_id):
        raise HTTPException(status_code=409, detail=f"Session '{session_id}' is not executing.")
    return {"session_id": session_id, "cancelled": True}
