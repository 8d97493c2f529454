# solver.py
import logging

from errors import MissingInputError
from model_client import ModelClient
from ocr import OCRAdapter
from prompts import FOLLOW_UP_TEMPLATE, SOLVE_TEMPLATE
from schemas import FollowUpRequest, FollowUpResult, ProblemRequest, SolutionResult

logger = logging.getLogger(__name__)


def has_problem_text(request: ProblemRequest) -> bool:
    return bool(request.problem_text and request.problem_text.strip())


def resolve_problem(request: ProblemRequest, ocr: OCRAdapter) -> str:
    """
    Pick the single problem statement for a request.
    Text wins over an image; the image goes through OCR only when there is no text.
    """
    if has_problem_text(request):
        if request.problem_image:
            logger.debug("Both text and image supplied; ignoring image")
        return request.problem_text
    if request.problem_image:
        latex = ocr.extract(request.problem_image).latex
        if not latex or not latex.strip():
            raise MissingInputError("No math problem could be read from the image.")
        return latex
    raise MissingInputError("No math problem provided.")


def solve(request: ProblemRequest, model: ModelClient, ocr: OCRAdapter) -> SolutionResult:
    problem = resolve_problem(request, ocr)
    logger.info("Solving problem (%d chars)", len(problem))
    return model.generate(SOLVE_TEMPLATE, {"problem": problem})


def answer(request: FollowUpRequest, model: ModelClient) -> FollowUpResult:
    if not request.previous_solution:
        # forwarded anyway; the model just gets no context
        logger.warning("Follow-up forwarded with an empty previous solution")
    logger.info("Answering follow-up (%d chars)", len(request.question))
    return model.generate(
        FOLLOW_UP_TEMPLATE,
        {"question": request.question, "previous_solution": request.previous_solution},
    )
