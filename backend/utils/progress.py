from typing import Dict


def calculate_wizard_progress(screen: str, question_index: int, total_questions: int, answered: int) -> Dict[str, int]:
    """Step and percent for the current wizard screen"""
    if total_questions <= 0:
        return {"current_step": 0, "total_steps": 0, "percent": 0, "answered": 0}

    if screen == "welcome":
        current_step = 0
    elif screen == "question":
        current_step = min(max(question_index, 0), total_questions - 1) + 1
    else:
        current_step = total_questions

    return {
        "current_step": current_step,
        "total_steps": total_questions,
        "percent": round(current_step / total_questions * 100),
        "answered": min(answered, total_questions),
    }
