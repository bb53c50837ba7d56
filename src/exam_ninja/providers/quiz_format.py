"""
The quiz payload every provider is asked to return.

One JSON Schema describes a question set. Each backend enforces it with its
own structured-output mechanism: a forced tool for Claude, a forced function
for DeepSeek, and responseSchema for Gemini.
"""

from typing import Any, Dict

QUIZ_TOOL_NAME = "submit_quiz"
QUIZ_TOOL_DESCRIPTION = (
    "Submit the generated exam questions. Call this tool with the full list of questions."
)

QUESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "type": {
            "type": "string",
            "enum": ["MCQ", "MSQ", "NAT"],
            "description": "MCQ: one correct option. MSQ: one or more correct options. NAT: numeric answer, no options."
        },
        "text": {
            "type": "string",
            "description": "The question prompt"
        },
        "options": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Provide 4 options for MCQ/MSQ. Leave empty for NAT."
        },
        "correctAnswer": {
            "type": "array",
            "items": {"type": "string"},
            "description": "The correct option text(s) or the numerical value for NAT."
        },
        "explanation": {
            "type": "string",
            "description": "Step-by-step explanation of the solution"
        },
    },
    "required": ["id", "type", "text", "correctAnswer", "explanation"]
}

QUIZ_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "quiz": {
            "type": "array",
            "items": QUESTION_SCHEMA,
            "description": "The generated questions"
        }
    },
    "required": ["quiz"]
}


def anthropic_quiz_tool() -> Dict[str, Any]:
    """The quiz schema as an Anthropic tool."""
    return {
        "name": QUIZ_TOOL_NAME,
        "description": QUIZ_TOOL_DESCRIPTION,
        "input_schema": QUIZ_SCHEMA,
    }


def openai_quiz_tool() -> Dict[str, Any]:
    """The quiz schema as an OpenAI-style function (DeepSeek)."""
    return {
        "type": "function",
        "function": {
            "name": QUIZ_TOOL_NAME,
            "description": QUIZ_TOOL_DESCRIPTION,
            "parameters": QUIZ_SCHEMA,
        },
    }


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a JSON Schema dict to Gemini's responseSchema dialect.

    Gemini wants upper-case type names and rejects keys it doesn't know.
    """
    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type":
            converted["type"] = value.upper()
        elif key == "properties":
            converted["properties"] = {
                name: to_gemini_schema(prop) for name, prop in value.items()
            }
        elif key == "items":
            converted["items"] = to_gemini_schema(value)
        elif key in ("enum", "required", "description"):
            converted[key] = value
    return converted


def quiz_items(payload: Any) -> list:
    """
    Pull the question list out of a decoded quiz payload.

    Accepts {"quiz": [...]} or a bare list.

    Raises:
        ValueError: If the payload holds no question list
    """
    if isinstance(payload, dict):
        payload = payload.get("quiz")
    if not isinstance(payload, list):
        raise ValueError("payload is missing the 'quiz' array")
    return payload
