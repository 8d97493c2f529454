# streamlit_app.py
# Run: streamlit run streamlit_app.py   (API must be up: python main.py)

import logging
import uuid
from typing import Optional

import requests
import streamlit as st

import config

config.setup_logging()
logger = logging.getLogger("mathvision.ui")

API_URL = config.BACKEND_BASE_URL
REQUEST_TIMEOUT = config.MODEL_TIMEOUT + config.OCR_TIMEOUT

st.set_page_config(page_title="MathVision", layout="centered")
st.title("MathVision")
st.caption("Submit math problems via text or image.")


class ApiError(Exception):
    pass


# ---------------- Session defaults ----------------
ss = st.session_state
ss.setdefault("session_id", str(uuid.uuid4()))
ss.setdefault("busy", False)
ss.setdefault("pending", None)
ss.setdefault("uploader_key", 0)
ss.setdefault("solution", None)
ss.setdefault("transcript", [])
ss.setdefault("flash", None)

# Widget values can only be set before the widget is created in a run
if "restore_question" in ss:
    ss["follow_up_text"] = ss.pop("restore_question")


# ---------------- API calls ----------------
def _call(method: str, path: str, **kwargs) -> dict:
    headers = {"X-Session-Id": ss.session_id}
    try:
        r = requests.request(method, f"{API_URL}{path}", headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        logger.warning("API %s %s failed: %s", method, path, e)
        raise ApiError(f"Could not reach the server: {e}")
    if not r.ok:
        try:
            detail = r.json().get("detail")
        except ValueError:
            detail = None
        raise ApiError(detail or f"Server error ({r.status_code}).")
    return r.json()


def _refresh_session() -> None:
    view = _call("GET", "/session")
    ss.solution = view.get("solution")
    ss.transcript = view.get("transcript") or []


def _uploaded_file():
    return ss.get(f"upload_{ss.uploader_key}")


# ---------------- Widget callbacks ----------------
def _on_text_change() -> None:
    # typing clears any selected image
    if ss.get("problem_text"):
        ss.uploader_key += 1


def _on_upload() -> None:
    if _uploaded_file() is not None:
        ss["problem_text"] = ""


def _queue_solve() -> None:
    text = (ss.get("problem_text") or "").strip()
    upload = _uploaded_file()
    if not text and upload is None:
        ss.flash = "Please provide either a text problem or an image."
        return
    ss.busy = True
    ss.pending = ("solve", None)


def _queue_follow_up() -> None:
    question = (ss.get("follow_up_text") or "").strip()
    if not question:
        return
    ss.busy = True
    ss.pending = ("follow_up", question)
    ss["follow_up_text"] = ""


# ---------------- Actions ----------------
def _run_solve() -> None:
    text = (ss.get("problem_text") or "").strip()
    upload = _uploaded_file()
    try:
        if text:
            _call("POST", "/solve", json={"problem_text": ss["problem_text"]})
        else:
            files = {"image": (upload.name, upload.getvalue(), upload.type)}
            _call("POST", "/solve/upload", files=files)
    finally:
        _refresh_session()


def _run_follow_up(question: str) -> None:
    try:
        _call("POST", "/follow-up", json={"question": question})
    except ApiError:
        ss["restore_question"] = question
        raise
    finally:
        _refresh_session()


# ---------------- Layout ----------------
if ss.flash:
    st.error(ss.flash)
    ss.flash = None

with st.container(border=True):
    st.text_area("Math problem", key="problem_text", placeholder="Enter math problem...", on_change=_on_text_change)
    st.file_uploader(
        "...or upload a photo",
        type=["png", "jpg", "jpeg", "webp"],
        key=f"upload_{ss.uploader_key}",
        on_change=_on_upload,
    )
    solving = ss.busy and ss.pending and ss.pending[0] == "solve"
    st.button(
        "Solving..." if solving else "Solve Problem",
        disabled=ss.busy,
        on_click=_queue_solve,
        use_container_width=True,
    )

if ss.solution:
    st.subheader("Solution:")
    with st.container(border=True):
        st.text(ss.solution)

    st.subheader("Follow-up Questions")
    st.caption("Ask anything about the solution.")
    with st.container(height=300):
        for turn in ss.transcript:
            with st.chat_message(turn["role"]):
                st.markdown(turn["content"])
    st.text_input("Ask a follow-up question...", key="follow_up_text", disabled=ss.busy)
    answering = ss.busy and ss.pending and ss.pending[0] == "follow_up"
    st.button("Answering..." if answering else "Ask", disabled=ss.busy, on_click=_queue_follow_up)


# ---------------- Pending work (one request at a time) ----------------
pending: Optional[tuple] = ss.pending
if pending:
    action, arg = pending
    try:
        with st.spinner("Working..."):
            if action == "solve":
                _run_solve()
            else:
                _run_follow_up(arg)
    except ApiError as e:
        ss.flash = str(e)
    finally:
        ss.pending = None
        ss.busy = False
    st.rerun()
