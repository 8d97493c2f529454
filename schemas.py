# schemas.py
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict


# ---------------- Requests / results ----------------
class ProblemRequest(BaseModel):
    problem_text: Optional[str] = None
    # data:<mimetype>;base64,<encoded_data>
    problem_image: Optional[str] = None


class SolutionResult(BaseModel):
    solution: str
    # forbid extra keys so the JSON Schema includes "additionalProperties": false
    model_config = ConfigDict(extra="forbid")


class FollowUpRequest(BaseModel):
    question: str
    previous_solution: str


class FollowUpResult(BaseModel):
    answer: str
    model_config = ConfigDict(extra="forbid")


class OCRResult(BaseModel):
    latex: str


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    model_config = ConfigDict(frozen=True)


# ---------------- Prompt template inputs ----------------
class SolvePromptInput(BaseModel):
    problem: str


class FollowUpPromptInput(BaseModel):
    question: str
    previous_solution: str


# ---------------- API envelopes ----------------
class FollowUpQuestion(BaseModel):
    question: str


class SessionView(BaseModel):
    session_id: str
    status: str
    solution: Optional[str] = None
    transcript: List[ChatTurn] = []
