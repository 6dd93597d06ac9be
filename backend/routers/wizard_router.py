from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from schemas.wizard_schemas import (
    AdvisorPersonaSchema,
    AnswerSchema,
    QuestionSchema,
    SelectAdvisorSchema,
    SuggestionRequestSchema,
)
from services import wizard_service
from services.session_service import create_session
from utils.constant import ADVISORS, QUESTIONS

router = APIRouter(tags=["Wizard"])


@router.get("/advisors")
async def list_advisors():
    advisors = [AdvisorPersonaSchema(**a).model_dump() for a in ADVISORS]
    return {"success": True, "message": "Advisors fetched", "result": advisors}


@router.get("/questions")
async def list_questions():
    questions = [QuestionSchema(**q).model_dump(exclude_none=True) for q in QUESTIONS]
    return {"success": True, "message": "Questions fetched", "result": questions}


@router.post("/sessions")
async def post_session():
    session = create_session()
    state = wizard_service.build_state(session)
    return {"success": True, "message": "Session created", "result": state}


@router.get("/sessions/{session_id}")
async def get_session_state(session_id: str):
    state = wizard_service.get_state(session_id)
    return {"success": True, "message": "Session fetched", "result": state}


@router.delete("/sessions/{session_id}")
async def start_new(session_id: str):
    state = wizard_service.start_new(session_id)
    return {"success": True, "message": "Session reset", "result": state}


@router.post("/sessions/{session_id}/advisor")
async def select_advisor(session_id: str, payload: SelectAdvisorSchema):
    state = wizard_service.select_advisor(session_id, payload.advisor_id)
    return {"success": True, "message": "Advisor selected", "result": state}


@router.post("/sessions/{session_id}/answers")
async def post_answer(session_id: str, payload: AnswerSchema):
    state = wizard_service.answer_current_question(session_id, payload.value, payload.is_ai_generated)
    return {"success": True, "message": "Answer saved", "result": state}


@router.post("/sessions/{session_id}/back")
async def go_back(session_id: str):
    state = wizard_service.go_back(session_id)
    return {"success": True, "message": "Moved back", "result": state}


@router.post("/sessions/{session_id}/edit/{question_id}")
async def edit_question(session_id: str, question_id: int):
    state = wizard_service.edit_question(session_id, question_id)
    return {"success": True, "message": "Editing question", "result": state}


@router.post("/sessions/{session_id}/suggestions")
async def post_suggestions(session_id: str, payload: SuggestionRequestSchema):
    suggestions = await wizard_service.get_suggestions(session_id, payload.question_id, payload.draft)
    return {"success": True, "message": "Suggestions generated", "result": suggestions}


@router.post("/sessions/{session_id}/doubts")
async def post_doubts(session_id: str):
    doubts = await wizard_service.get_founder_doubts(session_id)
    return {"success": True, "message": "Founder doubts generated", "result": {"options": doubts}}


@router.get("/sessions/{session_id}/review")
async def get_review(session_id: str):
    review = wizard_service.get_review(session_id)
    return {"success": True, "message": "Review fetched", "result": review}


@router.post("/sessions/{session_id}/report")
async def post_report(session_id: str):
    report = await wizard_service.generate_report(session_id)
    return {"success": True, "message": "Validation report generated", "result": report}


@router.get("/sessions/{session_id}/report/download", response_class=HTMLResponse)
async def download_report(session_id: str):
    content = wizard_service.get_report_html(session_id)
    return HTMLResponse(
        content,
        headers={"Content-Disposition": 'attachment; filename="idea-validation-report.html"'},
    )
