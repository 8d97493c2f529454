from typing import Union

import httpx
from uagents import Agent, Context

import config
from protocol import math_proto_v1
from models import (
    SolveProblemRequest, SolveProblemResponse,
    FollowUpQuestionRequest, FollowUpAnswerResponse,
    ErrorMessage,
)

http_client = httpx.AsyncClient(timeout=config.MODEL_TIMEOUT + config.OCR_TIMEOUT)


def _describe(e: Exception) -> str:
    # Prefer the backend's {"detail": ...} over the bare status line
    if isinstance(e, httpx.HTTPStatusError):
        try:
            return f"{e.response.status_code} {e.response.json()['detail']}"
        except (ValueError, KeyError, TypeError):
            return f"{e.response.status_code} {e.response.text[:200]}"
    return str(e) or type(e).__name__


# ====== Forwarding (proxy to the HTTP API) ======
async def forward_solve(
    client: httpx.AsyncClient, base_url: str, msg: SolveProblemRequest
) -> Union[SolveProblemResponse, ErrorMessage]:
    payload = {"problem_text": msg.problem_text, "problem_image": msg.problem_image}
    headers = {"X-Session-Id": msg.session_id}
    try:
        r = await client.post(f"{base_url}/solve", json=payload, headers=headers)
        r.raise_for_status()
        return SolveProblemResponse(solution=r.json()["solution"])
    except (httpx.HTTPError, ValueError, KeyError) as e:
        return ErrorMessage(error=f"/solve failed: {_describe(e)}")


async def forward_follow_up(
    client: httpx.AsyncClient, base_url: str, msg: FollowUpQuestionRequest
) -> Union[FollowUpAnswerResponse, ErrorMessage]:
    headers = {"X-Session-Id": msg.session_id}
    try:
        r = await client.post(f"{base_url}/follow-up", json={"question": msg.question}, headers=headers)
        r.raise_for_status()
        return FollowUpAnswerResponse(answer=r.json()["answer"])
    except (httpx.HTTPError, ValueError, KeyError) as e:
        return ErrorMessage(error=f"/follow-up failed: {_describe(e)}")


# ====== Handlers ======
@math_proto_v1.on_message(model=SolveProblemRequest, replies={SolveProblemResponse, ErrorMessage})
async def solve(ctx: Context, sender: str, msg: SolveProblemRequest):
    reply = await forward_solve(http_client, config.BACKEND_BASE_URL, msg)
    if isinstance(reply, ErrorMessage):
        ctx.logger.warning(reply.error)
    await ctx.send(sender, reply)


@math_proto_v1.on_message(model=FollowUpQuestionRequest, replies={FollowUpAnswerResponse, ErrorMessage})
async def follow_up(ctx: Context, sender: str, msg: FollowUpQuestionRequest):
    reply = await forward_follow_up(http_client, config.BACKEND_BASE_URL, msg)
    if isinstance(reply, ErrorMessage):
        ctx.logger.warning(reply.error)
    await ctx.send(sender, reply)


# ====== Agent ======
def build_agent() -> Agent:
    agent = Agent(
        name="mathvision_agent",
        seed=config.AGENT_SEED,
        port=config.AGENT_PORT,
        endpoint=[config.PUBLIC_ENDPOINT],   # uAgents inbox (must end with /submit)
    )
    agent.include(math_proto_v1, publish_manifest=False)

    @agent.on_event("startup")
    async def startup(ctx: Context):
        ctx.logger.info(f"Agent address: {agent.address}")
        ctx.logger.info(f"Forwarding to {config.BACKEND_BASE_URL}")

    @agent.on_event("shutdown")
    async def shutdown(ctx: Context):
        await http_client.aclose()

    return agent


if __name__ == "__main__":
    config.setup_logging()
    build_agent().run()
