from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class AdvisorPersonaSchema(BaseModel):
    id: str
    name: str
    tagline: str
    description: str
    tone: str


class QuestionSchema(BaseModel):
    id: int = Field(..., ge=1)
    text: str
    prompt: str
    input_type: str
    choices: Optional[List[str]] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None


class SelectAdvisorSchema(BaseModel):
    advisor_id: str


class AnswerSchema(BaseModel):
    value: Union[bool, int, str, List[str]]
    is_ai_generated: bool = False


class SuggestionRequestSchema(BaseModel):
    question_id: Optional[int] = None
    draft: Optional[str] = None


class ValidationReportSchema(BaseModel):
    idea_summary: str
    strengths: List[str]
    concerns: List[str]
    insights: str
    next_steps: str

    @field_validator("idea_summary", "insights", "next_steps")
    @classmethod
    def non_empty_text(cls, v):
        if not v or not v.strip():
            raise ValueError("Report fields must be non-empty")
        return v.strip()

    @field_validator("strengths", "concerns")
    @classmethod
    def non_empty_list(cls, v):
        items = [item.strip() for item in v if isinstance(item, str) and item.strip()]
        if not items:
            raise ValueError("Report lists must contain at least one entry")
        return items

