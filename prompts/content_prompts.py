"""
Prompt templates for quiz, flashcard and transcript generation.
Each builder returns the user prompt; the matching system prompt and token
budget live alongside it in CONTENT_PROMPTS.
"""

from typing import Dict, Any, List

from models.content_models import ArtifactKind, SourceChunk

CHUNK_SEPARATOR = "\n\n"

QUIZ_SYSTEM_PROMPT = (
    "You are a professional quiz creator. You must create questions that are SPECIFIC to the provided content. "
    "Use exact facts, names, dates, and details from the text. Never create generic questions. "
    "Always respond with valid JSON only. If you cannot create specific questions from the content, "
    "respond with an empty array []."
)

FLASHCARDS_SYSTEM_PROMPT = (
    "You are a professional flashcard creator. You must create flashcards that are SPECIFIC to the provided content. "
    "Use exact facts, names, dates, and details from the text. Never create generic flashcards. "
    "Always respond with valid JSON only. If you cannot create specific flashcards from the content, "
    "respond with an empty array []."
)

TRANSCRIPT_SYSTEM_PROMPT = (
    "You are a professional transcript creator. You must preserve ALL information from the provided content "
    "while improving formatting and readability. Never add or remove important facts. "
    "If you cannot create a proper transcript from the content, respond with "
    "'Unable to generate transcript from provided content.'"
)


def join_chunks(chunks: List[SourceChunk]) -> str:
    """Concatenate chunk texts in ingestion order with a blank line between them."""
    ordered = sorted(chunks, key=lambda c: c.ordinal)
    return CHUNK_SEPARATOR.join(c.text for c in ordered)


def build_quiz_prompt(content: str, num_questions: int = 5) -> str:
    """Build prompt for multiple-choice quiz generation"""
    return f"""
You are an expert quiz creator. Based on the following PDF content, create {num_questions} challenging multiple-choice questions that test understanding of the specific facts, details, and key information mentioned in the text.

CRITICAL REQUIREMENTS:
1. Create exactly {num_questions} questions
2. Each question must have exactly 4 options (A, B, C, D)
3. Only one option should be correct
4. Questions MUST be specific to the actual content provided - use real facts, names, dates, and details from the text
5. Do NOT create generic questions - make them specific to what's actually in the PDF
6. Use exact names, facts, and details mentioned in the content
7. Return ONLY valid JSON in this exact format:

[
  {{
    "question": "Specific question about actual content from the PDF",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "answer": "A"
  }}
]

PDF Content to analyze:
{content}

IMPORTANT: Create questions that test knowledge of the specific facts, people, events, and details mentioned in this exact content. Do not create generic questions.

Generate the quiz now:"""


def build_flashcards_prompt(content: str, num_cards: int = 16) -> str:
    """Build prompt for question/answer flashcard generation"""
    return f"""
You are an expert flashcard creator. Based on the following PDF content, create {num_cards} educational flashcards that cover specific facts, details, and key information mentioned in the text.

CRITICAL REQUIREMENTS:
1. Create exactly {num_cards} flashcards
2. Each flashcard must have a clear, specific question and a concise, accurate answer
3. Questions MUST be specific to the actual content provided - use real facts, names, dates, and details from the text
4. Do NOT create generic flashcards - make them specific to what's actually in the PDF
5. Use exact names, facts, and details mentioned in the content
6. Cover different types of questions: definitions, facts, achievements, career details, statistics, etc.
7. Return ONLY valid JSON in this exact format:

[
  {{
    "question": "Specific question about actual content from the PDF",
    "answer": "Concise, accurate answer based on the specific content"
  }}
]

PDF Content to analyze:
{content}

IMPORTANT: Create flashcards that test knowledge of the specific facts, people, events, achievements, and details mentioned in this exact content. Do not create generic flashcards.

Generate the flashcards now:"""


def build_transcript_prompt(content: str) -> str:
    """Build prompt for a restructured, fact-preserving transcript"""
    return f"""
You are an expert transcript creator. Based on the following PDF content, create a comprehensive, well-structured transcript that maintains all the important information while improving readability and organization.

CRITICAL REQUIREMENTS:
1. Preserve ALL important facts, names, dates, and details from the original content
2. Organize the content into logical sections with clear headings
3. Maintain the chronological order and flow of information
4. Use proper paragraph breaks and formatting
5. Make the text more readable while keeping all original information
6. Do NOT add any information that is not in the original content
7. Do NOT remove any important details from the original content
8. Return ONLY the formatted transcript text

PDF Content to transcribe:
{content}

Create a well-structured transcript now:"""


CONTENT_PROMPTS: Dict[ArtifactKind, Dict[str, Any]] = {
    ArtifactKind.QUIZ: {
        "system_prompt": QUIZ_SYSTEM_PROMPT,
        "builder": build_quiz_prompt,
        "max_tokens": 3000,
    },
    ArtifactKind.FLASHCARDS: {
        "system_prompt": FLASHCARDS_SYSTEM_PROMPT,
        "builder": build_flashcards_prompt,
        "max_tokens": 3500,
    },
    ArtifactKind.TRANSCRIPT: {
        "system_prompt": TRANSCRIPT_SYSTEM_PROMPT,
        "builder": build_transcript_prompt,
        "max_tokens": 4000,
    },
}
