ADVISORS = [
    {
        "id": "supporter",
        "name": "The Supporter",
        "tagline": "A warm, encouraging voice",
        "description": "Believes in your vision and helps you see the possibilities",
        "tone": "warm, encouraging, optimistic, focuses on strengths and potential",
    },
    {
        "id": "strategist",
        "name": "The Strategist",
        "tagline": "A balanced, logical guide",
        "description": "Provides thoughtful analysis with practical wisdom",
        "tone": "balanced, analytical yet supportive, focuses on practical steps and realistic planning",
    },
    {
        "id": "challenger",
        "name": "The Challenger",
        "tagline": "A direct, analytical thinker",
        "description": "Asks the tough questions to strengthen your idea",
        "tone": "direct, analytical, constructively critical, focuses on potential weaknesses and market realities",
    },
]

# Input types a question can take
INPUT_TEXT = "text"
INPUT_SINGLE_CHOICE = "single_choice"
INPUT_MULTI_SELECT = "multi_select"
INPUT_SLIDER = "slider"
INPUT_TOGGLE = "toggle"

INPUT_TYPES = (INPUT_TEXT, INPUT_SINGLE_CHOICE, INPUT_MULTI_SELECT, INPUT_SLIDER, INPUT_TOGGLE)

QUESTIONS = [
    {
        "id": 1,
        "text": "What is your idea in one or two sentences?",
        "prompt": "Based on the user's idea description, provide 4 different ways to articulate or refine their core concept. Each option should be clear, concise, and capture the essence of their idea from a slightly different angle.",
        "input_type": INPUT_TEXT,
    },
    {
        "id": 2,
        "text": "Who is the ideal target audience for this idea?",
        "prompt": "Based on the user's idea, suggest 4 potential target audiences. Consider demographics, psychographics, industry sectors, or user behaviors that would most benefit from this solution.",
        "input_type": INPUT_SINGLE_CHOICE,
        "choices": [
            "Individual consumers",
            "Small businesses",
            "Enterprise teams",
            "Students and educators",
        ],
    },
    {
        "id": 3,
        "text": "What core problem does this idea solve?",
        "prompt": "Identify 4 different core problems this idea could address. Think about pain points, inefficiencies, unmet needs, or market gaps that this solution tackles.",
        "input_type": INPUT_TEXT,
    },
    {
        "id": 4,
        "text": "What makes this idea unique or different?",
        "prompt": "Suggest 4 potential unique value propositions or differentiators for this idea. Consider innovative approaches, unique features, market positioning, or competitive advantages.",
        "input_type": INPUT_TEXT,
    },
    {
        "id": 5,
        "text": "What excites you most about building this?",
        "prompt": "Provide 4 motivational aspects that could drive someone to build this idea. Think about personal fulfillment, impact potential, learning opportunities, or market opportunities.",
        "input_type": INPUT_MULTI_SELECT,
        "choices": [
            "Solving a problem I have personally",
            "The size of the market opportunity",
            "Learning new skills along the way",
            "The positive impact on people's lives",
        ],
    },
    {
        "id": 6,
        "text": "What potential challenges or obstacles do you foresee?",
        "prompt": "Identify 4 realistic challenges or obstacles this idea might face. Consider technical hurdles, market barriers, resource constraints, or competitive threats.",
        "input_type": INPUT_MULTI_SELECT,
        "choices": [
            "Finding the first paying customers",
            "Building the product with limited resources",
            "Standing out from existing competitors",
            "Funding the early stages",
        ],
    },
    {
        "id": 7,
        "text": "Have you spoken with potential customers about this problem?",
        "prompt": "Suggest 4 short, practical ways the user could start conversations with potential customers about this idea.",
        "input_type": INPUT_TOGGLE,
    },
    {
        "id": 8,
        "text": "How confident are you in this idea right now?",
        "prompt": "Suggest 4 concrete signals that would raise the user's confidence in this idea.",
        "input_type": INPUT_SLIDER,
        "min_value": 1,
        "max_value": 10,
    },
    {
        "id": 9,
        "text": "What are you most unsure about right now?",
        "prompt": "Suggest 4 common areas of uncertainty for this type of idea. Think about market validation, technical feasibility, business model, or execution concerns.",
        "input_type": INPUT_TEXT,
    },
]

# Answers whose ids feed founder doubts
IDEA_QUESTION_ID = 1
AUDIENCE_QUESTION_ID = 2
PROBLEM_QUESTION_ID = 3
SOLUTION_QUESTION_ID = 4

NO_ANSWER_TEXT = "No answer provided"
NO_IDEA_TEXT = "No idea provided"

ALLOWED_MODELS = ["gpt-4o-mini", "gpt-3.5-turbo", "gpt-4o"]
DEFAULT_MODEL = "gpt-4o-mini"
MAX_SUGGESTIONS = 5

FALLBACK_OPTIONS = [
    "Streamline daily tasks.",
    "Enhance personal productivity.",
    "Simplify complex workflows.",
]

FALLBACK_DOUBTS = [
    "Is the market large enough?",
    "Can we acquire users affordably?",
    "Will this really solve their core problem?",
    "What if a big player enters?",
    "Do we have the right team?",
]

FALLBACK_REPORT = {
    "idea_summary": "Your idea is taking shape. We could not generate a personalised summary right now, but your answers have been saved.",
    "strengths": [
        "You have taken the time to articulate your idea clearly.",
        "You have thought about who this is for and what problem it solves.",
    ],
    "concerns": [
        "The target market still needs validation with real users.",
        "Competition and differentiation need closer research.",
    ],
    "insights": "Ideas become stronger when they are tested early. Focus on learning from potential customers before building too much.",
    "next_steps": "Talk to five potential customers this week, write down what surprised you, and refine your problem statement based on what you hear.",
}

SUGGESTION_SYSTEM_PROMPT = """You are a creative assistant that generates concise, distinct 1-2 sentence options for a user's idea based on a single guiding question.
Respond ONLY with a JSON object of the form {"options": ["Option 1.", "Option 2.", "Option 3."]}.
Ensure options are distinct in phrasing and content.
Write in this tone: {tone}"""

DOUBTS_SYSTEM_PROMPT = """You are an expert advisor. Based on the provided idea, audience, problem, and solution, identify potential doubts or challenges a founder might face.
Respond ONLY with a JSON object of the form {"options": ["Doubt 1?", "Doubt 2?", "Doubt 3?"]}, where each string is a concise doubt."""

REPORT_SYSTEM_PROMPT = """You are a startup advisor reviewing a founder's answers about a new business idea.
Your tone is: {tone}

Respond ONLY with a JSON object with exactly these fields:
{
  "ideaSummary": "2-3 sentence summary of the idea",
  "strengths": ["strength 1", "strength 2", "strength 3"],
  "concerns": ["concern 1", "concern 2", "concern 3"],
  "insights": "a short paragraph of market or strategic insight",
  "nextSteps": "a short paragraph with concrete next steps"
}

Every field must be non-empty. Be specific to the founder's answers."""

DEFAULT_TONE = "balanced, analytical yet supportive"
