# session.py
"""
Per-session state machine: Idle -> Solving -> Solved <-> Answering.

Transitions are pure functions over an immutable `SessionState`. `SessionStore`
keeps one state per session id and applies transitions under a lock so that
only one orchestrator call can be in flight per session.

Every `begin_*` stamps the state with a fresh `call_id`; the matching
`finish_*`/`fail_*` only apply while that id is still current, so a call that
outlives a reset never touches the session that replaced it.
"""
import enum
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from errors import MissingInputError, NoSolutionError, SessionBusyError
from schemas import ChatTurn, FollowUpRequest, FollowUpResult, ProblemRequest, SolutionResult
from solver import has_problem_text

logger = logging.getLogger(__name__)


class Status(str, enum.Enum):
    IDLE = "idle"
    SOLVING = "solving"
    SOLVED = "solved"
    ANSWERING = "answering"


@dataclass(frozen=True)
class SessionState:
    status: Status = Status.IDLE
    solution: Optional[str] = None
    transcript: Tuple[ChatTurn, ...] = ()
    # set while a call is in flight
    call_id: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.status in (Status.SOLVING, Status.ANSWERING)

    def owned_by(self, call_id: str) -> bool:
        return self.busy and self.call_id == call_id


def _check_idle(state: SessionState) -> None:
    if state.busy:
        raise SessionBusyError("A request is already in progress for this session.")


def _new_call_id() -> str:
    return uuid.uuid4().hex


# ---------------- Problem solving ----------------
def begin_solve(state: SessionState, request: ProblemRequest) -> SessionState:
    _check_idle(state)
    if not has_problem_text(request) and not request.problem_image:
        raise MissingInputError("Please provide either a text problem or an image.")
    return replace(state, status=Status.SOLVING, call_id=_new_call_id())


def finish_solve(state: SessionState, call_id: str, result: SolutionResult) -> SessionState:
    if not state.owned_by(call_id):
        return state  # session was reset mid-call
    return SessionState(status=Status.SOLVED, solution=result.solution, transcript=())


def fail_solve(state: SessionState, call_id: str) -> SessionState:
    if not state.owned_by(call_id):
        return state
    return SessionState(status=Status.IDLE)


# ---------------- Follow-up ----------------
def begin_follow_up(state: SessionState, question: str) -> SessionState:
    _check_idle(state)
    if state.solution is None:
        raise NoSolutionError("Solve a problem first before asking a follow-up.")
    if not question or not question.strip():
        raise MissingInputError("Please type a follow-up question.")
    return replace(state, status=Status.ANSWERING, call_id=_new_call_id())


def finish_follow_up(state: SessionState, call_id: str, question: str, result: FollowUpResult) -> SessionState:
    if not state.owned_by(call_id):
        return state
    turns = (ChatTurn(role="user", content=question), ChatTurn(role="assistant", content=result.answer))
    return replace(state, status=Status.SOLVED, transcript=state.transcript + turns, call_id=None)


def fail_follow_up(state: SessionState, call_id: str) -> SessionState:
    if not state.owned_by(call_id):
        return state
    return replace(state, status=Status.SOLVED, call_id=None)


class SessionStore:
    def __init__(self):
        self._states: Dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionState:
        with self._lock:
            return self._states.get(session_id, SessionState())

    def transition(self, session_id: str, fn: Callable[[SessionState], SessionState]) -> SessionState:
        with self._lock:
            new = fn(self._states.get(session_id, SessionState()))
            self._states[session_id] = new
            return new

    def reset(self, session_id: str) -> None:
        with self._lock:
            self._states.pop(session_id, None)

    def solve(
        self,
        session_id: str,
        request: ProblemRequest,
        solve_fn: Callable[[ProblemRequest], SolutionResult],
    ) -> SolutionResult:
        call_id = self.transition(session_id, lambda s: begin_solve(s, request)).call_id
        try:
            result = solve_fn(request)
        except BaseException:
            self.transition(session_id, lambda s: fail_solve(s, call_id))
            logger.info("Session %s: solve failed, back to idle", session_id)
            raise
        self.transition(session_id, lambda s: finish_solve(s, call_id, result))
        return result

    def follow_up(
        self,
        session_id: str,
        question: str,
        answer_fn: Callable[[FollowUpRequest], FollowUpResult],
    ) -> FollowUpResult:
        state = self.transition(session_id, lambda s: begin_follow_up(s, question))
        call_id = state.call_id
        try:
            result = answer_fn(FollowUpRequest(question=question, previous_solution=state.solution))
        except BaseException:
            self.transition(session_id, lambda s: fail_follow_up(s, call_id))
            logger.info("Session %s: follow-up failed, transcript kept", session_id)
            raise
        self.transition(session_id, lambda s: finish_follow_up(s, call_id, question, result))
        return result
