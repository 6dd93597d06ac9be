import html
import json
import logging
from typing import Any, Dict, List, Optional

from exceptions import AppError, ErrorType, not_found_error, validation_error
from services import openai_service
from services.session_service import get_session, reset_session, save_advisor, save_answers, save_report, set_position
from utils.constant import (
    ADVISORS,
    AUDIENCE_QUESTION_ID,
    IDEA_QUESTION_ID,
    INPUT_MULTI_SELECT,
    INPUT_SINGLE_CHOICE,
    INPUT_SLIDER,
    INPUT_TEXT,
    INPUT_TOGGLE,
    NO_ANSWER_TEXT,
    NO_IDEA_TEXT,
    PROBLEM_QUESTION_ID,
    QUESTIONS,
    SOLUTION_QUESTION_ID,
)
from utils.progress import calculate_wizard_progress
from utils.security import MAX_INPUT_LENGTH, sanitize_input, validate_input

logger = logging.getLogger(__name__)

MAX_SELECTIONS = 10
TOGGLE_VALUES = {"yes": "yes", "true": "yes", "y": "yes", "no": "no", "false": "no", "n": "no"}


def get_advisor(advisor_id: str) -> Optional[Dict[str, Any]]:
    return next((a for a in ADVISORS if a["id"] == advisor_id), None)


def get_question(question_id: int) -> Optional[Dict[str, Any]]:
    return next((q for q in QUESTIONS if q["id"] == question_id), None)


def question_index(question_id: int) -> int:
    for index, question in enumerate(QUESTIONS):
        if question["id"] == question_id:
            return index
    raise not_found_error("Question")


def normalize_answer(question: Dict[str, Any], value: Any) -> str:
    """Validate an answer against the question's input type and return its stored string form"""
    input_type = question["input_type"]

    if input_type in (INPUT_TEXT, INPUT_SINGLE_CHOICE):
        if not isinstance(value, str):
            raise validation_error("answer", "Expected text")
        answer = sanitize_input(value, MAX_INPUT_LENGTH)
        if not answer:
            raise validation_error("answer", "Answer cannot be empty")
        is_valid, error = validate_input(answer)
        if not is_valid:
            raise validation_error("answer", error)
        return answer

    if input_type == INPUT_MULTI_SELECT:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise validation_error("answer", "Expected a list of selections")
        selections = []
        for item in value:
            cleaned = sanitize_input(item, 500)
            if cleaned and cleaned not in selections:
                selections.append(cleaned)
        if not selections:
            raise validation_error("answer", "Select at least one option")
        if len(selections) > MAX_SELECTIONS:
            raise validation_error("answer", f"Select at most {MAX_SELECTIONS} options")
        answer = json.dumps(selections)
        is_valid, error = validate_input(answer)
        if not is_valid:
            raise validation_error("answer", error)
        return answer

    if input_type == INPUT_TOGGLE:
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, str) and value.strip().lower() in TOGGLE_VALUES:
            return TOGGLE_VALUES[value.strip().lower()]
        raise validation_error("answer", "Expected yes or no")

    if input_type == INPUT_SLIDER:
        if isinstance(value, bool):
            raise validation_error("answer", "Expected a number")
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise validation_error("answer", "Expected a number")
        low, high = question.get("min_value", 1), question.get("max_value", 10)
        if not low <= number <= high:
            raise validation_error("answer", f"Value must be between {low} and {high}")
        return str(number)

    raise AppError(f"Unknown input type {input_type}", ErrorType.UNKNOWN, "UNKNOWN_INPUT_TYPE", 500)


def build_state(session: Dict[str, Any]) -> Dict[str, Any]:
    screen = session["screen"]
    index = session["question_index"]

    # Question screens need an advisor; reports need a report
    if screen == "question" and not session["advisor"]:
        screen, index = "welcome", 0
        set_position(session["session_id"], screen, index)
    elif screen == "report" and not session["report"]:
        screen = "review"
        set_position(session["session_id"], screen, index)

    return {
        "session_id": session["session_id"],
        "screen": screen,
        "question_index": index,
        "advisor": session["advisor"],
        "answers": session["answers"],
        "current_question": QUESTIONS[index] if screen == "question" else None,
        "progress": calculate_wizard_progress(screen, index, len(QUESTIONS), len(session["answers"])),
        "report": session["report"],
    }


def get_state(session_id: str) -> Dict[str, Any]:
    return build_state(get_session(session_id))


def select_advisor(session_id: str, advisor_id: str) -> Dict[str, Any]:
    get_session(session_id)
    advisor = get_advisor(advisor_id)
    if not advisor:
        raise validation_error("advisor_id", f"Unknown advisor '{advisor_id}'")

    save_advisor(session_id, advisor)
    set_position(session_id, "question", 0)
    logger.info(f"🧭 Session {session_id} selected advisor {advisor_id}")
    return get_state(session_id)


def answer_current_question(session_id: str, value: Any, is_ai_generated: bool = False) -> Dict[str, Any]:
    state = get_state(session_id)
    if state["screen"] != "question":
        raise validation_error("answer", "No question is active", 409)

    index = state["question_index"]
    question = QUESTIONS[index]
    answers = dict(state["answers"])
    answers[question["id"]] = normalize_answer(question, value)
    save_answers(session_id, answers)

    source = "AI suggestion" if is_ai_generated else "user"
    logger.info(f"✍️ Session {session_id} answered question {question['id']} ({source})")

    if index < len(QUESTIONS) - 1:
        set_position(session_id, "question", index + 1)
    else:
        set_position(session_id, "review", index)
    return get_state(session_id)


def go_back(session_id: str) -> Dict[str, Any]:
    state = get_state(session_id)
    screen, index = state["screen"], state["question_index"]

    if screen == "question" and index > 0:
        set_position(session_id, "question", index - 1)
    elif screen == "question":
        set_position(session_id, "welcome", 0)
    elif screen == "review":
        set_position(session_id, "question", len(QUESTIONS) - 1)
    elif screen == "report":
        set_position(session_id, "review", index)
    return get_state(session_id)


def edit_question(session_id: str, question_id: int) -> Dict[str, Any]:
    state = get_state(session_id)
    if not state["advisor"]:
        raise validation_error("advisor", "Select an advisor first")
    set_position(session_id, "question", question_index(question_id))
    return get_state(session_id)


def get_review(session_id: str) -> List[Dict[str, Any]]:
    answers = get_session(session_id)["answers"]
    return [
        {
            "question_id": question["id"],
            "question": question["text"],
            "answer": answers.get(question["id"]) or NO_ANSWER_TEXT,
            "answered": question["id"] in answers,
        }
        for question in QUESTIONS
    ]


def start_new(session_id: str) -> Dict[str, Any]:
    get_session(session_id)
    reset_session(session_id)
    return get_state(session_id)


async def get_suggestions(session_id: str, question_id: Optional[int] = None, draft: Optional[str] = None) -> Dict[str, Any]:
    state = get_state(session_id)
    if question_id is None:
        if state["screen"] != "question":
            raise validation_error("question_id", "No question is active")
        question = QUESTIONS[state["question_index"]]
    else:
        question = get_question(question_id)
        if not question:
            raise not_found_error("Question")

    # While the idea itself is being written, the draft is the idea
    if question["id"] == IDEA_QUESTION_ID:
        user_idea = draft or state["answers"].get(IDEA_QUESTION_ID, "")
    else:
        user_idea = state["answers"].get(IDEA_QUESTION_ID, "")

    tone = state["advisor"]["tone"] if state["advisor"] else None
    options = await openai_service.generate_question_options(question, user_idea, tone, draft)
    return {"question_id": question["id"], "options": options}


async def get_founder_doubts(session_id: str) -> List[str]:
    answers = get_session(session_id)["answers"]
    return await openai_service.fetch_founder_doubts(
        idea=answers.get(IDEA_QUESTION_ID, ""),
        audience=answers.get(AUDIENCE_QUESTION_ID) or "general audience",
        problem=answers.get(PROBLEM_QUESTION_ID) or "unspecified problem",
        solution=answers.get(SOLUTION_QUESTION_ID) or "unspecified solution",
    )


async def generate_report(session_id: str) -> Dict[str, Any]:
    session = get_session(session_id)
    advisor = session["advisor"]
    if not advisor:
        raise validation_error("advisor", "Select an advisor before generating a report")

    answers = session["answers"]
    report = await openai_service.generate_validation_report(
        answers,
        advisor["tone"],
        answers.get(IDEA_QUESTION_ID) or NO_IDEA_TEXT,
        advisor_id=advisor["id"],
    )
    save_report(session_id, report)
    set_position(session_id, "report", session["question_index"])
    return report


def render_report_html(report: Dict[str, Any]) -> str:
    """Standalone HTML document for downloading a report"""
    def items(values):
        return "".join(f"<li>{html.escape(v)}</li>" for v in values)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Idea Validation Report</title>
  <style>
    body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; line-height: 1.6; }}
    h1 {{ color: #4338ca; text-align: center; }}
    h2 {{ color: #6366f1; border-bottom: 2px solid #e0e7ff; padding-bottom: 10px; }}
  </style>
</head>
<body>
  <h1>Idea Validation Report</h1>
  <h2>Idea Summary</h2>
  <p>{html.escape(report["idea_summary"])}</p>
  <h2>Strengths</h2>
  <ul>{items(report["strengths"])}</ul>
  <h2>Concerns</h2>
  <ul>{items(report["concerns"])}</ul>
  <h2>Insights</h2>
  <p>{html.escape(report["insights"])}</p>
  <h2>Next Steps</h2>
  <p>{html.escape(report["next_steps"])}</p>
  <p><small>Generated {html.escape(report.get("generated_at") or "")}</small></p>
</body>
</html>
"""


def get_report_html(session_id: str) -> str:
    report = get_session(session_id)["report"]
    if not report:
        raise not_found_error("Report")
    return render_report_html(report)
