import json

import pytest

from exceptions import AppError
from services import session_service, wizard_service
from services.session_service import create_session, get_session
from services.storage_service import MemoryStore, SecureStorage
from utils.constant import FALLBACK_OPTIONS, FALLBACK_REPORT, NO_ANSWER_TEXT, QUESTIONS


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


IDEA = "A subscription box that delivers local farm produce to city apartments"

VALID_ANSWERS = {
    "text": IDEA,
    "single_choice": "Young professionals in big cities",
    "multi_select": ["Impact on people's lives", "Market size"],
    "toggle": True,
    "slider": 7,
}


def answer_all(session_id):
    state = None
    for question in QUESTIONS:
        state = wizard_service.answer_current_question(session_id, VALID_ANSWERS[question["input_type"]])
    return state


@pytest.fixture
def session_id():
    return create_session()["session_id"]


@pytest.fixture
def started(session_id):
    wizard_service.select_advisor(session_id, "challenger")
    return session_id


def test_new_session_starts_at_welcome(session_id):
    state = wizard_service.get_state(session_id)
    assert state["screen"] == "welcome"
    assert state["advisor"] is None
    assert state["answers"] == {}
    assert state["progress"]["current_step"] == 0


def test_unknown_session_is_not_found():
    with pytest.raises(AppError) as exc_info:
        wizard_service.get_state("0" * 32)
    assert exc_info.value.status_code == 404

    with pytest.raises(AppError):
        wizard_service.get_state("../../etc/passwd")


def test_select_advisor_moves_to_first_question(session_id):
    state = wizard_service.select_advisor(session_id, "supporter")
    assert state["screen"] == "question"
    assert state["current_question"]["id"] == 1
    assert state["advisor"]["id"] == "supporter"


def test_select_unknown_advisor(session_id):
    with pytest.raises(AppError) as exc_info:
        wizard_service.select_advisor(session_id, "pirate")
    assert exc_info.value.status_code == 400


def test_answering_advances_then_reaches_review(started):
    state = wizard_service.answer_current_question(started, IDEA)
    assert state["question_index"] == 1
    assert state["answers"][1] == IDEA
    assert state["progress"]["current_step"] == 2

    state = wizard_service.go_back(started)
    state = answer_all(started)
    assert state["screen"] == "review"
    assert len(state["answers"]) == len(QUESTIONS)
    assert state["progress"]["percent"] == 100


def test_answer_without_active_question(session_id):
    with pytest.raises(AppError) as exc_info:
        wizard_service.answer_current_question(session_id, IDEA)
    assert exc_info.value.status_code == 409


def test_answers_are_sanitized(started):
    state = wizard_service.answer_current_question(started, "<b>My</b> idea<script>x()</script>")
    assert state["answers"][1] == "My idea"


def test_structured_answers_are_normalized():
    by_type = {q["input_type"]: q for q in QUESTIONS}

    assert wizard_service.normalize_answer(by_type["multi_select"], ["A", "<i>B</i>", "A", ""]) == json.dumps(["A", "B"])
    assert wizard_service.normalize_answer(by_type["multi_select"], "Only one") == json.dumps(["Only one"])
    assert wizard_service.normalize_answer(by_type["toggle"], False) == "no"
    assert wizard_service.normalize_answer(by_type["toggle"], "Yes") == "yes"
    assert wizard_service.normalize_answer(by_type["slider"], 10) == "10"
    assert wizard_service.normalize_answer(by_type["slider"], "3") == "3"


@pytest.mark.parametrize(
    "input_type, value",
    [
        ("text", ""),
        ("text", "<p></p>"),
        ("text", ["list"]),
        ("multi_select", []),
        ("multi_select", 5),
        ("toggle", "maybe"),
        ("slider", 11),
        ("slider", 0),
        ("slider", True),
        ("slider", "lots"),
    ],
)
def test_invalid_answers_are_rejected(input_type, value):
    question = next(q for q in QUESTIONS if q["input_type"] == input_type)
    with pytest.raises(AppError) as exc_info:
        wizard_service.normalize_answer(question, value)
    assert exc_info.value.status_code == 400


def test_back_navigation(started):
    state = wizard_service.go_back(started)
    assert state["screen"] == "welcome"

    wizard_service.select_advisor(started, "challenger")
    answer_all(started)
    state = wizard_service.go_back(started)
    assert state["screen"] == "question"
    assert state["question_index"] == len(QUESTIONS) - 1


def test_edit_from_review_jumps_to_question(started):
    answer_all(started)
    state = wizard_service.edit_question(started, 3)
    assert state["screen"] == "question"
    assert state["current_question"]["id"] == 3

    with pytest.raises(AppError) as exc_info:
        wizard_service.edit_question(started, 99)
    assert exc_info.value.status_code == 404


def test_review_lists_every_question(started):
    wizard_service.answer_current_question(started, IDEA)
    review = wizard_service.get_review(started)

    assert [item["question_id"] for item in review] == [q["id"] for q in QUESTIONS]
    assert review[0]["answer"] == IDEA
    assert review[1]["answer"] == NO_ANSWER_TEXT
    assert review[1]["answered"] is False


def test_state_round_trips_through_storage(started):
    answer_all(started)

    # Simulate a restart: in-process position is lost, storage survives
    session_service._positions.clear()
    session = get_session(started)

    assert session["advisor"]["id"] == "challenger"
    assert session["answers"][1] == IDEA
    assert session["screen"] == "review"


def test_restored_session_resumes_at_first_unanswered(started):
    wizard_service.answer_current_question(started, IDEA)
    session_service._positions.clear()
    assert get_session(started)["question_index"] == 1


def test_stored_answers_outside_range_are_dropped():
    assert session_service.load_answers({"1": "a", "0": "b", "99": "c", "x": "d", "2": 5}) == {1: "a"}


def test_start_new_clears_everything(started):
    answer_all(started)
    state = wizard_service.start_new(started)
    assert state["screen"] == "welcome"
    assert state["advisor"] is None
    assert state["answers"] == {}


@pytest.mark.asyncio
async def test_generate_report_requires_advisor(session_id):
    with pytest.raises(AppError) as exc_info:
        await wizard_service.generate_report(session_id)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_generate_report_falls_back_and_moves_to_report(started, fake_openai):
    answer_all(started)
    fake_openai.queue("not json")

    report = await wizard_service.generate_report(started)

    assert report["is_fallback"] is True
    assert report["idea_summary"] == FALLBACK_REPORT["idea_summary"]
    state = wizard_service.get_state(started)
    assert state["screen"] == "report"
    assert state["report"] == report

    assert wizard_service.go_back(started)["screen"] == "review"
    html = wizard_service.get_report_html(started)
    assert "<h2>Strengths</h2>" in html


def test_report_html_escapes_content():
    report = dict(FALLBACK_REPORT, idea_summary="Tom & Jerry <3", generated_at="now")
    html = wizard_service.render_report_html(report)
    assert "Tom &amp; Jerry &lt;3" in html


def test_report_download_requires_report(started):
    with pytest.raises(AppError) as exc_info:
        wizard_service.get_report_html(started)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_suggestions_use_draft_for_idea_question(started, fake_openai):
    fake_openai.queue(json.dumps({"options": ["Sharper idea."]}))
    result = await wizard_service.get_suggestions(started, draft=IDEA)

    assert result == {"question_id": 1, "options": ["Sharper idea."]}
    assert IDEA in fake_openai.calls[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_suggestions_without_idea_fall_back(started, fake_openai):
    result = await wizard_service.get_suggestions(started, question_id=3)
    assert result["question_id"] == 3
    assert result["options"] == FALLBACK_OPTIONS
    assert fake_openai.calls == []


@pytest.mark.asyncio
async def test_founder_doubts_use_earlier_answers(started, fake_openai):
    for question in QUESTIONS[:4]:
        wizard_service.answer_current_question(started, VALID_ANSWERS[question["input_type"]])
    fake_openai.queue(json.dumps({"options": ["Will renters pay?"]}))

    assert await wizard_service.get_founder_doubts(started) == ["Will renters pay?"]
    content = fake_openai.calls[0]["messages"][1]["content"]
    assert "Young professionals in big cities" in content


def test_answers_the_llm_would_reject_are_refused_up_front(started):
    with pytest.raises(AppError) as exc_info:
        wizard_service.answer_current_question(started, "An app that will evaluate (score) your function (role) at work")
    assert exc_info.value.status_code == 400
    assert wizard_service.get_state(started)["answers"] == {}

    multi_select = next(q for q in QUESTIONS if q["input_type"] == "multi_select")
    with pytest.raises(AppError):
        wizard_service.normalize_answer(multi_select, ["Growth", "eval(payload)"])

    with pytest.raises(AppError):
        wizard_service.answer_current_question(started, "ok")


@pytest.mark.asyncio
async def test_report_is_requested_for_every_accepted_answer(started, fake_openai):
    answer_all(started)
    fake_openai.queue("not json")
    await wizard_service.generate_report(started)
    assert len(fake_openai.calls) == 1


def test_expired_session_is_forgotten(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(session_service, "storage", SecureStorage(MemoryStore(), max_age_seconds=60, clock=clock))
    session_id = create_session()["session_id"]
    wizard_service.select_advisor(session_id, "supporter")

    clock.now += 61
    with pytest.raises(AppError) as exc_info:
        get_session(session_id)
    assert exc_info.value.status_code == 404
    assert session_id not in session_service._positions


def test_clear_expired_sessions_prunes_process_state(monkeypatch):
    clock = FakeClock()
    store = MemoryStore()
    monkeypatch.setattr(session_service, "storage", SecureStorage(store, max_age_seconds=60, clock=clock))
    monkeypatch.setattr(session_service, "CLEANUP_INTERVAL_SECONDS", float("inf"))
    old = [create_session()["session_id"] for _ in range(3)]
    session_service.save_report(old[0], dict(FALLBACK_REPORT))

    clock.now += 61
    fresh = create_session()["session_id"]
    assert session_service.clear_expired_sessions() == 3

    assert set(session_service._positions) == {fresh}
    assert session_service._reports == {}
    assert store.keys() == [f"{fresh}:answers"]


def test_session_creation_sweeps_expired_sessions(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(session_service, "storage", SecureStorage(MemoryStore(), max_age_seconds=60, clock=clock))
    monkeypatch.setattr(session_service, "CLEANUP_INTERVAL_SECONDS", 0)

    for _ in range(5):
        create_session()
    clock.now += 61
    create_session()

    assert len(session_service._positions) == 1
