# main.py
import logging

import uvicorn
from fastapi import Depends, FastAPI, File, Header, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

import config
import solver
from errors import MathVisionError
from model_client import ModelClient, get_model_client
from ocr import OCRAdapter, get_ocr, pick_mime, to_data_uri
from schemas import FollowUpQuestion, FollowUpResult, ProblemRequest, SessionView, SolutionResult
from session import SessionStore

config.setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="MathVision API", version="1.0.0")

# In-memory session state keyed by X-Session-Id; nothing survives a restart
SESSIONS = SessionStore()


@app.exception_handler(MathVisionError)
async def mathvision_error_handler(request: Request, exc: MathVisionError) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _solve_in_session(
    session_id: str,
    request: ProblemRequest,
    model: ModelClient,
    ocr: OCRAdapter,
) -> SolutionResult:
    return SESSIONS.solve(session_id, request, lambda r: solver.solve(r, model, ocr))


# ---------------- Routes ----------------
@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/solve", response_model=SolutionResult)
def solve(
    payload: ProblemRequest,
    x_session_id: str = Header(..., alias="X-Session-Id"),
    model: ModelClient = Depends(get_model_client),
    ocr: OCRAdapter = Depends(get_ocr),
):
    """
    Solve a problem given as text or as a data-URI image.
    Clears the session's follow-up transcript on success.
    """
    return _solve_in_session(x_session_id, payload, model, ocr)


@app.post("/solve/upload", response_model=SolutionResult)
async def solve_upload(
    image: UploadFile = File(..., description="Photo of the problem"),
    x_session_id: str = Header(..., alias="X-Session-Id"),
    model: ModelClient = Depends(get_model_client),
    ocr: OCRAdapter = Depends(get_ocr),
):
    """Multipart variant of /solve for a single image file."""
    content = await image.read()
    mime = pick_mime(image.filename or "upload", image.content_type)
    request = ProblemRequest(problem_image=to_data_uri(content, mime))
    return await run_in_threadpool(_solve_in_session, x_session_id, request, model, ocr)


@app.post("/follow-up", response_model=FollowUpResult)
def follow_up(
    payload: FollowUpQuestion,
    x_session_id: str = Header(..., alias="X-Session-Id"),
    model: ModelClient = Depends(get_model_client),
):
    """Answer a question about the session's current solution; appends two transcript turns."""
    return SESSIONS.follow_up(x_session_id, payload.question, lambda r: solver.answer(r, model))


@app.get("/session", response_model=SessionView)
def get_session(x_session_id: str = Header(..., alias="X-Session-Id")):
    state = SESSIONS.get(x_session_id)
    return SessionView(
        session_id=x_session_id,
        status=state.status.value,
        solution=state.solution,
        transcript=list(state.transcript),
    )


@app.delete("/session")
def reset_session(x_session_id: str = Header(..., alias="X-Session-Id")):
    SESSIONS.reset(x_session_id)
    return {"session_id": x_session_id, "cleared": True}


if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL)
