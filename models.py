from typing import Optional
from uagents import Model

# Match the FastAPI /solve request and response
class SolveProblemRequest(Model):
    session_id: str
    problem_text: Optional[str] = None
    problem_image: Optional[str] = None   # data:<mime>;base64,<data>

class SolveProblemResponse(Model):
    solution: str

# Match /follow-up; the previous solution lives in the backend session
class FollowUpQuestionRequest(Model):
    session_id: str
    question: str

class FollowUpAnswerResponse(Model):
    answer: str

class ErrorMessage(Model):
    error: str
