"""Tests for the HTTP / websocket surface, with a scripted model behind the executor."""

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from groundhog.agent.agent_loop import AgentExecutor
from groundhog.api import app as app_module
from groundhog.api.app import (
    app,
    bearer_credential,
    get_executor,
)
from groundhog.core.patterns import DEFAULT_PATTERN
from groundhog.core.schema import ModelResponse
from groundhog.memory.memory_store import SessionStore
from groundhog.tools import ToolRegistry
from tests.helpers import (
    RecordingTool,
    ScriptedModel,
    make_planner,
    text_response,
    tool_response,
)


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(app_module, "sessions", SessionStore(history_turns=5))
    monkeypatch.setattr(app_module.settings, "NOTES_DIR", "/nonexistent/notes")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _use_model(model: ScriptedModel, registry: ToolRegistry, max_iterations: int = 3) -> None:
    executor = AgentExecutor(make_planner(model, registry), registry, max_iterations)
    app.dependency_overrides[get_executor] = lambda: executor


def test_health_and_patterns(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    patterns = client.get("/patterns").json()
    assert patterns[0] == DEFAULT_PATTERN


def test_sessions(client: TestClient) -> None:
    session_id = client.post("/sessions").json()["session_id"]

    assert client.get("/sessions").json() == [session_id]


def test_agent_turn_with_tool(client: TestClient, registry: ToolRegistry) -> None:
    model = ScriptedModel(
        [tool_response(("c1", "calculator", '{"__arg1": "2+2"}')), text_response("4")]
    )
    _use_model(model, registry)

    body = client.post("/agent", json={"message": "what is 2+2?"}).json()

    assert body["reply"] == "4"
    assert body["steps"][0]["action"]["tool"] == "calculator"
    assert body["steps"][0]["observation"] == "4"
    assert body["session_id"] in client.get("/sessions").json()


def test_history_carries_over_within_session(client: TestClient, registry: ToolRegistry) -> None:
    model = ScriptedModel([text_response("Hello Ada"), text_response("You are Ada")])
    _use_model(model, registry)

    first = client.post("/agent", json={"message": "I am Ada"}).json()
    client.post("/agent", json={"message": "who am I?", "session_id": first["session_id"]})

    second_messages, _ = model.calls[1]
    assert any("User: I am Ada\nAssistant: Hello Ada" in m.content for m in second_messages)


def test_pattern_is_applied(client: TestClient, registry: ToolRegistry) -> None:
    model = ScriptedModel([text_response("plan")])
    _use_model(model, registry)

    client.post("/agent", json={"message": "gym", "pattern": "Plan Day"})

    human = model.calls[0][0][-1]
    assert human.content.startswith("Based on the provided notes, create a detailed plan")
    assert '"gym"' in human.content


def test_bearer_token_reaches_tools(client: TestClient) -> None:
    tool = RecordingTool("calendar")
    registry = ToolRegistry([tool])
    model = ScriptedModel([tool_response(("c1", "calendar", "today")), text_response("ok")])
    _use_model(model, registry)

    client.post(
        "/agent", json={"message": "my day"}, headers={"Authorization": "Bearer secret-token"}
    )

    credential = tool.contexts[0].credential
    assert credential is not None and credential.get_secret_value() == "secret-token"


def test_planner_error_is_502(client: TestClient, registry: ToolRegistry) -> None:
    _use_model(ScriptedModel([ModelResponse(choices=[])]), registry)

    response = client.post("/agent", json={"message": "hi"})

    assert response.status_code == 502
    assert response.json()["detail"] == "Sorry, I encountered an error."


def test_iteration_cap_is_502(client: TestClient, registry: ToolRegistry) -> None:
    model = ScriptedModel([lambda i: tool_response((f"c{i}", "echo", "again"))], repeat=True)
    _use_model(model, registry, max_iterations=1)

    response = client.post("/agent", json={"message": "loop"})

    assert response.status_code == 502
    assert len(model.calls) == 2


def test_failed_turn_is_not_remembered(client: TestClient, registry: ToolRegistry) -> None:
    model = ScriptedModel([ModelResponse(choices=[]), text_response("fine")])
    _use_model(model, registry)
    session_id = client.post("/sessions").json()["session_id"]

    client.post("/agent", json={"message": "first", "session_id": session_id})
    client.post("/agent", json={"message": "second", "session_id": session_id})

    assert app_module.sessions.get_or_create(session_id).memory.history() == (
        "User: second\nAssistant: fine"
    )


def test_websocket_streams_and_replies(client: TestClient, registry: ToolRegistry) -> None:
    _use_model(ScriptedModel([text_response("hello there")]), registry)

    with client.websocket_connect("/ws") as ws:
        ws.send_text('{"message": "hi"}')
        chunk = ws.receive_json()
        reply = ws.receive_json()
        ws.send_text("not json")
        error = ws.receive_json()

    assert (chunk["type"], chunk["content"]) == ("chunk", "hello there")
    assert (reply["type"], reply["content"]) == ("reply", "hello there")
    assert error["type"] == "error"


@pytest.mark.parametrize(
    "header, expected",
    [
        (None, None),
        ("Bearer abc", "abc"),
        ("bearer  abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
    ],
)
def test_bearer_credential(header: str | None, expected: str | None) -> None:
    credential = bearer_credential(header)

    if expected is None:
        assert credential is None
    else:
        assert credential is not None and credential.get_secret_value() == expected


def test_recent_notes_are_attached_to_the_request(
    client: TestClient,
    registry: ToolRegistry,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    (tmp_path / "2024-05-01.md").write_text("dentist at 9", encoding="utf-8")
    monkeypatch.setattr(app_module.settings, "NOTES_DIR", str(tmp_path))
    model = ScriptedModel([text_response("ok"), text_response("ok")])
    _use_model(model, registry)

    first = client.post("/agent", json={"message": "what's on?"}).json()
    client.post(
        "/agent",
        json={"message": "bare", "include_notes": False, "session_id": first["session_id"]},
    )

    with_notes = model.calls[0][0][-1].content
    assert with_notes.endswith("\nNotes content: \n\nNote 1 (2024-05-01)\ndentist at 9\n")
    assert "Notes content" not in model.calls[1][0][-1].content
    history = model.calls[1][0][1].content
    assert "User: what's on?" in history
    assert "dentist" not in history
