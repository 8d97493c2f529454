"""Tests for the uagents gateway's forwarding helpers."""

import json

import httpx
import pytest

from fetch_agent import forward_follow_up, forward_solve
from models import (
    ErrorMessage, FollowUpAnswerResponse, FollowUpQuestionRequest,
    SolveProblemRequest, SolveProblemResponse,
)

BASE = "http://backend.test"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_forward_solve_ok() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["session"] = request.headers["X-Session-Id"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"solution": "Step 1..."})

    async with _client(handler) as client:
        reply = await forward_solve(client, BASE, SolveProblemRequest(session_id="s1", problem_text="2x + 3 = 7"))

    assert reply == SolveProblemResponse(solution="Step 1...")
    assert seen["url"] == f"{BASE}/solve"
    assert seen["session"] == "s1"
    assert seen["body"] == {"problem_text": "2x + 3 = 7", "problem_image": None}


@pytest.mark.asyncio
async def test_forward_solve_surfaces_backend_detail() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": "No math problem provided."})

    async with _client(handler) as client:
        reply = await forward_solve(client, BASE, SolveProblemRequest(session_id="s1"))

    assert isinstance(reply, ErrorMessage)
    assert "400 No math problem provided." in reply.error


@pytest.mark.asyncio
async def test_forward_follow_up_ok() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/follow-up"
        assert json.loads(request.content) == {"question": "why?"}
        return httpx.Response(200, json={"answer": "Because..."})

    async with _client(handler) as client:
        reply = await forward_follow_up(client, BASE, FollowUpQuestionRequest(session_id="s1", question="why?"))

    assert reply == FollowUpAnswerResponse(answer="Because...")


@pytest.mark.asyncio
async def test_forward_follow_up_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        reply = await forward_follow_up(client, BASE, FollowUpQuestionRequest(session_id="s1", question="why?"))

    assert isinstance(reply, ErrorMessage)
    assert "connection refused" in reply.error
