"""
Core API backend for Groundhog.

This module is thin glue between clients and :class:`~groundhog.agent.agent_loop.AgentExecutor`.
It exposes the following endpoints:
- **GET /health**    - liveness probe for health checks.
- **GET /patterns**  - names of the predefined request patterns.
- **POST /sessions** - create a new session, returns a session ID.
- **GET /sessions**  - list all active sessions.
- **POST /agent**    - one turn: {"message": "...", "pattern": "...", "session_id": "..."}
- **WS /ws**         - persistent connection; streams model output while a turn runs.

Authentication happens in front of this service.  A bearer token on the request, if any, is
forwarded untouched to the tools as the delegated credential.
"""

import asyncio
import logging
from functools import lru_cache
from typing import (
    List,
    Optional,
)

from fastapi import (
    Depends,
    FastAPI,
    Header,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
)
from pydantic import (
    SecretStr,
    ValidationError,
)

from groundhog.agent.agent_loop import (
    AgentExecutor,
    create_executor,
)
from groundhog.agent.llm import StreamCallback
from groundhog.api.models import (
    MessageRequest,
    MessageResponse,
    SessionResponse,
    StreamEvent,
)
from groundhog.common import (
    AnsiColors,
    colored_print,
)
from groundhog.config import settings
from groundhog.core.errors import (
    AgentError,
    MaxIterationsExceeded,
)
from groundhog.core.patterns import (
    build_user_input,
    pattern_names,
)
from groundhog.core.schema import (
    ToolContext,
    TurnResult,
)
from groundhog.memory.memory_store import (
    ConversationTurn,
    Session,
    SessionStore,
)
from groundhog.tools.notes import (
    NotesError,
    format_notes,
    get_last_notes,
)

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, I encountered an error."

# Session storage (in-memory only)
sessions = SessionStore(history_turns=settings.HISTORY_TURNS)

app = FastAPI(title="Groundhog API", version="0.1.0", description="Groundhog assistant API")


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_executor() -> AgentExecutor:
    """Executor shared by all requests, created on first use."""
    return create_executor(settings)


def bearer_credential(authorization: Optional[str]) -> SecretStr | None:
    """Extract the token of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return SecretStr(token.strip())


def _read_notes() -> str:
    try:
        return format_notes(get_last_notes(settings.NOTES_DIR, settings.MAX_NOTES))
    except NotesError as exc:
        logger.warning("Couldn't get last notes: %s", exc)
        return ""


async def run_turn(
    executor: AgentExecutor,
    session: Session,
    req: MessageRequest,
    credential: SecretStr | None = None,
    stream: Optional[StreamCallback] = None,
) -> TurnResult:
    """Run one turn for *session*, holding its lock, and record it in the session memory."""
    notes_block = await asyncio.to_thread(_read_notes) if req.include_notes else ""
    user_input = build_user_input(req.message, req.pattern, notes_block)
    logger.debug("User input for session %s:\n%s", session.session_id, user_input)

    ctx = ToolContext(session_id=session.session_id, credential=credential)
    async with session.lock:
        result = await asyncio.wait_for(
            executor.run(user_input, ctx, session.memory.history(), stream=stream),
            timeout=settings.TURN_TIMEOUT,
        )
        session.memory.append(
            ConversationTurn(user_message=req.message or req.pattern, reply=result.output)
        )
    return result


def _log_agent_error(exc: AgentError) -> None:
    if isinstance(exc, MaxIterationsExceeded):
        logger.error("Agent did not converge: %s", exc)
    else:
        logger.error("Agent error: %s", exc)
    for step in exc.steps:
        logger.error("  %s -> %s", step.action.log, step.observation)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/patterns", response_model=List[str], summary="List request patterns")
async def list_patterns() -> List[str]:
    """Return pattern names, default first."""
    return pattern_names()


@app.post("/sessions", response_model=SessionResponse, summary="Create a new session")
async def create_session() -> SessionResponse:
    """Create a new conversation session."""
    session = sessions.get_or_create()
    return SessionResponse(session_id=session.session_id)


@app.get("/sessions", response_model=List[str], summary="List active sessions")
async def list_sessions() -> List[str]:
    """List all active session IDs."""
    return sessions.ids()


@app.post("/agent", response_model=MessageResponse, summary="Process a message")
async def agent_endpoint(
    req: MessageRequest,
    authorization: Optional[str] = Header(None),
    executor: AgentExecutor = Depends(get_executor),
) -> MessageResponse:
    """Process a user message with optional session context."""
    session = sessions.get_or_create(req.session_id)

    try:
        result = await run_turn(executor, session, req, bearer_credential(authorization))
    except asyncio.TimeoutError as exc:
        logger.error("Turn timed out after %.0fs", settings.TURN_TIMEOUT)
        raise HTTPException(status_code=504, detail=ERROR_REPLY) from exc
    except AgentError as exc:
        _log_agent_error(exc)
        raise HTTPException(status_code=502, detail=ERROR_REPLY) from exc

    return MessageResponse(reply=result.output, steps=result.steps, session_id=session.session_id)


@app.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket, executor: AgentExecutor = Depends(get_executor)
) -> None:
    """Serve turns over one connection, streaming model output as it arrives."""
    await websocket.accept()
    session = sessions.get_or_create(websocket.query_params.get("session_id"))
    credential = bearer_credential(websocket.headers.get("authorization"))
    logger.info("Client connected (session %s)", session.session_id)

    async def send(kind: str, content: str) -> None:
        event = StreamEvent(type=kind, content=content, session_id=session.session_id)
        await websocket.send_json(event.model_dump())

    async def on_chunk(chunk: str) -> None:
        await send("chunk", chunk)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                req = MessageRequest.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning("Invalid message received: %s", exc)
                await send("error", "Invalid message.")
                continue

            try:
                result = await run_turn(executor, session, req, credential, stream=on_chunk)
            except asyncio.TimeoutError:
                logger.error("Turn timed out after %.0fs", settings.TURN_TIMEOUT)
                await send("error", ERROR_REPLY)
                continue
            except AgentError as exc:
                _log_agent_error(exc)
                await send("error", ERROR_REPLY)
                continue
            await send("reply", result.output)
    except WebSocketDisconnect:
        logger.info("Client disconnected (session %s)", session.session_id)


@app.get("/", summary="API root")
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Welcome to the Groundhog API! Use /docs for API documentation."}


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8080, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Groundhog API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )

    colored_print(f"🦫 Groundhog API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "groundhog.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m groundhog.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
