import threading

import pytest

from errors import MissingInputError, NoSolutionError, ProviderError, SessionBusyError
from schemas import ChatTurn, FollowUpResult, ProblemRequest, SolutionResult
from session import (
    SessionState, SessionStore, Status,
    begin_follow_up, begin_solve, fail_follow_up, fail_solve, finish_follow_up, finish_solve,
)

TEXT = ProblemRequest(problem_text="2x + 3 = 7")
WAIT = 5


def _solved(transcript=()):
    return SessionState(status=Status.SOLVED, solution="Step 1...", transcript=tuple(transcript))


class Blocking:
    """Orchestrator stand-in that parks until released, then returns or raises."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self, request):
        self.started.set()
        self.release.wait(WAIT)
        if self.error is not None:
            raise self.error
        return self.result


class Call(threading.Thread):
    """Runs a store call in the background and keeps its result or error."""

    def __init__(self, fn, *args):
        super().__init__(daemon=True)
        self.fn = fn
        self.args = args
        self.result = None
        self.error = None

    def run(self):
        try:
            self.result = self.fn(*self.args)
        except Exception as e:
            self.error = e


def _start(blocking, fn, *args):
    call = Call(fn, *args, blocking)
    call.start()
    assert blocking.started.wait(WAIT)
    return call


def _finish(blocking, call):
    blocking.release.set()
    call.join(WAIT)
    assert not call.is_alive()


# ---------------- Pure transitions ----------------
def test_solve_cycle_clears_transcript():
    state = _solved([ChatTurn(role="user", content="q"), ChatTurn(role="assistant", content="a")])
    state = begin_solve(state, TEXT)
    assert state.status is Status.SOLVING
    assert state.call_id
    state = finish_solve(state, state.call_id, SolutionResult(solution="new"))
    assert state == SessionState(status=Status.SOLVED, solution="new")


def test_failed_solve_returns_to_idle():
    solving = begin_solve(_solved(), TEXT)
    assert fail_solve(solving, solving.call_id) == SessionState()


def test_missing_input_leaves_state_untouched():
    with pytest.raises(MissingInputError):
        begin_solve(_solved(), ProblemRequest(problem_text="  "))


def test_busy_session_rejects_new_work():
    solving = begin_solve(SessionState(), TEXT)
    with pytest.raises(SessionBusyError):
        begin_solve(solving, TEXT)
    answering = begin_follow_up(_solved(), "why?")
    with pytest.raises(SessionBusyError):
        begin_follow_up(answering, "and?")


def test_follow_up_needs_a_solution():
    with pytest.raises(NoSolutionError):
        begin_follow_up(SessionState(), "why?")


def test_follow_up_appends_user_then_assistant():
    answering = begin_follow_up(_solved(), "why?")
    state = finish_follow_up(answering, answering.call_id, "why?", FollowUpResult(answer="Because..."))
    assert state.status is Status.SOLVED
    assert state.call_id is None
    assert state.transcript == (
        ChatTurn(role="user", content="why?"),
        ChatTurn(role="assistant", content="Because..."),
    )


def test_failed_follow_up_keeps_transcript():
    before = _solved([ChatTurn(role="user", content="q"), ChatTurn(role="assistant", content="a")])
    answering = begin_follow_up(before, "why?")
    assert fail_follow_up(answering, answering.call_id) == before


def test_transitions_ignore_a_stale_call_id():
    first = begin_solve(SessionState(), TEXT)
    second = begin_solve(SessionState(), TEXT)
    assert first.call_id != second.call_id
    assert finish_solve(second, first.call_id, SolutionResult(solution="late")) == second
    assert fail_solve(second, first.call_id) == second


# ---------------- Store ----------------
def test_store_builds_alternating_transcript():
    store = SessionStore()
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="Step 1..."))
    for i in range(3):
        store.follow_up("s1", f"q{i}", lambda r, i=i: FollowUpResult(answer=f"a{i}"))

    state = store.get("s1")
    assert [t.role for t in state.transcript] == ["user", "assistant"] * 3
    assert [t.content for t in state.transcript] == ["q0", "a0", "q1", "a1", "q2", "a2"]


def test_store_passes_current_solution_to_follow_up():
    store = SessionStore()
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="Step 1..."))
    seen = []
    store.follow_up("s1", "why?", lambda r: seen.append(r) or FollowUpResult(answer="ok"))
    assert seen[0].previous_solution == "Step 1..."
    assert seen[0].question == "why?"


def test_store_failure_paths():
    store = SessionStore()
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="Step 1..."))
    store.follow_up("s1", "q", lambda r: FollowUpResult(answer="a"))
    before = store.get("s1")

    def boom(_):
        raise ProviderError("rate limited")

    with pytest.raises(ProviderError):
        store.follow_up("s1", "why?", boom)
    assert store.get("s1") == before

    with pytest.raises(ProviderError):
        store.solve("s1", TEXT, boom)
    assert store.get("s1") == SessionState()


class Cancelled(BaseException):
    pass


def test_store_recovers_from_base_exceptions():
    store = SessionStore()

    def cancelled(_):
        raise Cancelled()

    with pytest.raises(Cancelled):
        store.solve("s1", TEXT, cancelled)
    assert store.get("s1") == SessionState()

    store.solve("s1", TEXT, lambda r: SolutionResult(solution="Step 1..."))
    before = store.get("s1")
    with pytest.raises(Cancelled):
        store.follow_up("s1", "why?", cancelled)
    assert store.get("s1") == before
    assert store.follow_up("s1", "why?", lambda r: FollowUpResult(answer="ok")).answer == "ok"


def test_store_sessions_are_independent():
    store = SessionStore()
    store.solve("a", TEXT, lambda r: SolutionResult(solution="A"))
    assert store.get("b") == SessionState()
    store.reset("a")
    assert store.get("a") == SessionState()


def test_completion_after_reset_is_dropped():
    store = SessionStore()

    def solve_then_reset(r):
        store.reset("s1")
        return SolutionResult(solution="late")

    store.solve("s1", TEXT, solve_then_reset)
    assert store.get("s1") == SessionState()


def test_store_rejects_work_while_solving():
    store = SessionStore()
    slow = Blocking(result=SolutionResult(solution="Step 1..."))
    call = _start(slow, store.solve, "s1", TEXT)

    with pytest.raises(SessionBusyError):
        store.solve("s1", TEXT, lambda r: SolutionResult(solution="other"))
    with pytest.raises(SessionBusyError):
        store.follow_up("s1", "why?", lambda r: FollowUpResult(answer="other"))

    _finish(slow, call)
    assert call.error is None
    assert store.get("s1").solution == "Step 1..."


def test_store_rejects_work_while_answering():
    store = SessionStore()
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="Step 1..."))
    slow = Blocking(result=FollowUpResult(answer="Because..."))
    call = _start(slow, store.follow_up, "s1", "why?")

    with pytest.raises(SessionBusyError):
        store.follow_up("s1", "and?", lambda r: FollowUpResult(answer="other"))
    with pytest.raises(SessionBusyError):
        store.solve("s1", TEXT, lambda r: SolutionResult(solution="other"))

    _finish(slow, call)
    assert [t.content for t in store.get("s1").transcript] == ["why?", "Because..."]


def test_solve_outliving_a_reset_leaves_the_next_solve_alone():
    store = SessionStore()
    old = Blocking(result=SolutionResult(solution="OLD"))
    old_call = _start(old, store.solve, "s1", TEXT)

    store.reset("s1")
    new = Blocking(result=SolutionResult(solution="NEW"))
    new_call = _start(new, store.solve, "s1", TEXT)

    _finish(old, old_call)
    assert store.get("s1").status is Status.SOLVING

    _finish(new, new_call)
    assert new_call.result.solution == "NEW"
    assert store.get("s1").solution == "NEW"
    assert store.get("s1").status is Status.SOLVED


def test_failed_solve_outliving_a_reset_leaves_the_next_solve_alone():
    store = SessionStore()
    old = Blocking(error=ProviderError("rate limited"))
    old_call = _start(old, store.solve, "s1", TEXT)

    store.reset("s1")
    new = Blocking(result=SolutionResult(solution="NEW"))
    new_call = _start(new, store.solve, "s1", TEXT)

    _finish(old, old_call)
    assert isinstance(old_call.error, ProviderError)
    assert store.get("s1").status is Status.SOLVING

    _finish(new, new_call)
    assert store.get("s1").solution == "NEW"


def test_follow_up_outliving_a_reset_stays_off_the_new_transcript():
    store = SessionStore()
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="P1"))
    old = Blocking(result=FollowUpResult(answer="about P1"))
    old_call = _start(old, store.follow_up, "s1", "old q")

    store.reset("s1")
    store.solve("s1", TEXT, lambda r: SolutionResult(solution="P2"))
    new = Blocking(result=FollowUpResult(answer="about P2"))
    new_call = _start(new, store.follow_up, "s1", "new q")

    _finish(old, old_call)
    _finish(new, new_call)

    state = store.get("s1")
    assert new_call.result.answer == "about P2"
    assert state.solution == "P2"
    assert [t.content for t in state.transcript] == ["new q", "about P2"]
