import logging
import re
import time
from typing import Any, Dict, Optional
from uuid import uuid4

from exceptions import not_found_error
from services.storage_service import SecureStorage, create_storage
from utils.constant import QUESTIONS

logger = logging.getLogger(__name__)

ADVISOR_KEY = "selectedAdvisor"
ANSWERS_KEY = "answers"

SESSION_ID_RE = re.compile(r"^[0-9a-f]{32}$")

storage: SecureStorage = create_storage()

# Screen position and reports live only for the lifetime of the process
_positions: Dict[str, Dict[str, Any]] = {}
_reports: Dict[str, Dict[str, Any]] = {}

CLEANUP_INTERVAL_SECONDS = 300
_last_cleanup = 0.0


def _key(session_id: str, name: str) -> str:
    return f"{session_id}:{name}"


def load_answers(raw: Any) -> Dict[int, str]:
    """Coerce stored answers back to {question_id: answer}, dropping ids outside 1..N"""
    if not isinstance(raw, dict):
        return {}
    answers = {}
    for key, value in raw.items():
        try:
            question_id = int(key)
        except (TypeError, ValueError):
            continue
        if 1 <= question_id <= len(QUESTIONS) and isinstance(value, str):
            answers[question_id] = value
    return answers


def _resume_position(advisor: Optional[Dict[str, Any]], answers: Dict[int, str]) -> Dict[str, Any]:
    if not advisor:
        return {"screen": "welcome", "question_index": 0}
    for index, question in enumerate(QUESTIONS):
        if question["id"] not in answers:
            return {"screen": "question", "question_index": index}
    return {"screen": "review", "question_index": len(QUESTIONS) - 1}


def create_session() -> Dict[str, Any]:
    _maybe_clear_expired()
    session_id = uuid4().hex
    storage.set_value(_key(session_id, ANSWERS_KEY), {})
    _positions[session_id] = {"screen": "welcome", "question_index": 0}
    logger.info(f"🆕 Created wizard session {session_id}")
    return get_session(session_id)


def get_session(session_id: str) -> Dict[str, Any]:
    if not SESSION_ID_RE.match(session_id or ""):
        raise not_found_error("Session")

    advisor = storage.get_value(_key(session_id, ADVISOR_KEY))
    raw_answers = storage.get_value(_key(session_id, ANSWERS_KEY))

    if raw_answers is None and advisor is None:
        # Stored state expired or was removed
        forget_session(session_id)
        raise not_found_error("Session")

    answers = load_answers(raw_answers)
    if session_id not in _positions:
        _positions[session_id] = _resume_position(advisor, answers)
        logger.info(f"♻️ Restored session {session_id} at {_positions[session_id]['screen']}")

    return {
        "session_id": session_id,
        "advisor": advisor if isinstance(advisor, dict) else None,
        "answers": answers,
        "screen": _positions[session_id]["screen"],
        "question_index": _positions[session_id]["question_index"],
        "report": _reports.get(session_id),
    }


def save_advisor(session_id: str, advisor: Optional[Dict[str, Any]]) -> None:
    if advisor is None:
        storage.remove_value(_key(session_id, ADVISOR_KEY))
    else:
        storage.set_value(_key(session_id, ADVISOR_KEY), advisor)


def save_answers(session_id: str, answers: Dict[int, str]) -> None:
    storage.set_value(_key(session_id, ANSWERS_KEY), {str(k): v for k, v in answers.items()})


def set_position(session_id: str, screen: str, question_index: int = 0) -> None:
    _positions[session_id] = {"screen": screen, "question_index": question_index}


def save_report(session_id: str, report: Optional[Dict[str, Any]]) -> None:
    if report is None:
        _reports.pop(session_id, None)
    else:
        _reports[session_id] = report


def reset_session(session_id: str) -> None:
    save_advisor(session_id, None)
    save_answers(session_id, {})
    save_report(session_id, None)
    set_position(session_id, "welcome", 0)
    logger.info(f"🔄 Reset wizard session {session_id}")


def forget_session(session_id: str) -> None:
    _positions.pop(session_id, None)
    _reports.pop(session_id, None)


def clear_expired_sessions() -> int:
    """Drop expired stored values and the in-process state of sessions they belonged to"""
    storage.clear_expired()

    stale = [
        session_id
        for session_id in set(_positions) | set(_reports)
        if storage.store.get_item(_key(session_id, ANSWERS_KEY)) is None
        and storage.store.get_item(_key(session_id, ADVISOR_KEY)) is None
    ]
    for session_id in stale:
        forget_session(session_id)
    if stale:
        logger.info(f"🧹 Forgot {len(stale)} expired wizard sessions")
    return len(stale)


def _maybe_clear_expired() -> None:
    global _last_cleanup
    now = time.monotonic()
    if now - _last_cleanup >= CLEANUP_INTERVAL_SECONDS:
        _last_cleanup = now
        clear_expired_sessions()
