"""
Prompt templates for question generation

All prompt engineering lives here. Prompts are designed to:
1. Produce exam-pattern questions at the requested difficulty
2. Mix MCQ, MSQ and NAT where the exam pattern calls for it
3. Return strict JSON the generator can validate
"""

QUIZ_SYSTEM_PROMPT = """You are an expert question setter for Indian Competitive Exams like {exam_type}.
Your goal is to generate high-quality, exam-relevant questions on the topic: "{topic}".

Rules:
1. Difficulty Level: {difficulty}.
2. Total Questions: {count}.
3. Include a mix of Question Types if appropriate for the topic, but prioritize:
   - GATE: Mix of MCQ, MSQ, NAT.
   - SSC/Bank: Mostly MCQ.
4. For NAT (Numerical Answer Type), do not provide options. The user must type the number.
5. For MSQ (Multiple Select), ensure multiple options can be correct.
6. For MCQ, exactly one option is correct.
7. Every correct answer for MCQ/MSQ must be copied verbatim from the options.
8. Provide clear, step-by-step explanations for the solutions.
9. Ensure questions test application of concepts, not just memorization.
10. For Spatial/Visual topics, describe the image scenario in text clearly.
"""

QUIZ_GENERATE_PROMPT = """Generate {count} {difficulty} level questions for {topic} focusing on {exam_type} pattern.
"""

JSON_FORMAT_SECTION = """
Output only valid JSON in this format:
{{"quiz": [{{"id": "1", "type": "MCQ", "text": "...", "options": ["...", "...", "...", "..."], "correctAnswer": ["..."], "explanation": "..."}}]}}
"""


def format_quiz_system(topic: str, exam_type: str, difficulty: str, count: int) -> str:
    """Format the system prompt for a question set."""
    return QUIZ_SYSTEM_PROMPT.format(
        topic=topic,
        exam_type=exam_type,
        difficulty=difficulty,
        count=count,
    )


def format_quiz_prompt(
    topic: str,
    exam_type: str,
    difficulty: str,
    count: int,
    include_format: bool = False,
) -> str:
    """
    Format the user prompt for a question set.

    Args:
        topic: What to study
        exam_type: Exam pattern (GATE, SSC, ...)
        difficulty: Easy, Medium or Hard
        count: Number of questions
        include_format: Append explicit JSON instructions, for providers
            without tool calling or schema enforcement

    Returns:
        Formatted prompt string
    """
    prompt = QUIZ_GENERATE_PROMPT.format(
        topic=topic,
        exam_type=exam_type,
        difficulty=difficulty,
        count=count,
    )
    if include_format:
        prompt += JSON_FORMAT_SECTION.format()
    return prompt
