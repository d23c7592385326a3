"""Prompt templates for AI code review."""

from models import CodeSubmission, ReviewType

# =============================================================================
# SHARED PIECES
# =============================================================================

SYSTEM_PROMPT = (
    "You are an AI code reviewer expert. "
    "Always respond in the exact JSON format requested."
)

FOCUS_INSTRUCTIONS: dict[ReviewType, str] = {
    ReviewType.COMPREHENSIVE: "",
    ReviewType.SYNTAX_ONLY: (
        "Focus primarily on syntax errors and coding style issues."
    ),
    ReviewType.SECURITY_FOCUS: (
        "Focus primarily on security vulnerabilities and best practices."
    ),
    ReviewType.PERFORMANCE_FOCUS: (
        "Focus primarily on performance optimizations and issues."
    ),
}

_ANALYSIS_AREAS = (
    "Analyze the code for:\n"
    "1. Syntax errors and bugs\n"
    "2. Style issues and best practices\n"
    "3. Performance concerns\n"
    "4. Security vulnerabilities\n"
    "5. Code structure and organization\n"
)

RESULT_SCHEMA = (
    "{{\n"
    '  "metrics": {{\n'
    '    "overall": {{ "grade": "A-F with plus/minus", "score": 0-100, '
    '"change": percentage change (optional) }},\n'
    '    "maintainability": {{ "grade": "A-F with plus/minus", "score": 0-100, '
    '"change": percentage change (optional) }},\n'
    '    "performance": {{ "grade": "A-F with plus/minus", "score": 0-100, '
    '"change": percentage change (optional) }},\n'
    '    "security": {{ "grade": "A-F with plus/minus", "score": 0-100, '
    '"change": percentage change (optional) }}\n'
    "  }},\n"
    '  "comments": [\n'
    "    {{\n"
    '      "line": line number (integer, 1-based),\n'
    '      "text": "detailed explanation of the issue",\n'
    '      "type": "error|warning|suggestion|info",\n'
    '      "suggestion": "code suggestion to fix (optional)"\n'
    "    }}\n"
    "  ],\n"
    '  "improvedCode": "Improved version of the entire code with all '
    'suggestions applied",\n'
    '  "keyImprovements": ["list of key improvements made", "maximum 6 items"],\n'
    '  "issues": {{\n'
    '    "critical": number of critical issues (integer),\n'
    '    "warnings": number of warnings (integer),\n'
    '    "info": number of informational items (integer),\n'
    '    "types": [\n'
    "      {{\n"
    '        "name": "issue category name",\n'
    '        "description": "brief description of the issue category",\n'
    '        "severity": "high|medium|low"\n'
    "      }}\n"
    "    ]\n"
    "  }}\n"
    "}}\n"
)

_OUTPUT_RULES = (
    "Respond with ONLY the JSON object. No markdown, no explanation, "
    "no extra text.\n"
)


# =============================================================================
# CHAT MODELS (Gemini), JSON mode is enforced by the API as well
# =============================================================================

REVIEW_PROMPT = (
    "You are an expert code reviewer for {language} code. {focus}\n"
    "\n"
    "Please review the following code and provide a detailed analysis:\n"
    "```{language}\n"
    "{code}\n"
    "```\n"
    "\n" + _ANALYSIS_AREAS + "\n"
    "Generate a JSON response with the following format:\n"
    + RESULT_SCHEMA
    + "\n"
    + _OUTPUT_RULES
)


# =============================================================================
# INSTRUCTION-TUNED OPEN MODELS (Hugging Face), no JSON mode
# =============================================================================

INSTRUCT_PROMPT = (
    "<s>[INST]\n"
    "You are an elite code reviewer for {language} code who specializes in "
    "providing comprehensive, accurate analysis. {focus}\n"
    "\n"
    "Please review the following code and return ONLY a JSON response with "
    "your analysis:\n"
    "```{language}\n"
    "{code}\n"
    "```\n"
    "\n"
    "IMPORTANT INSTRUCTIONS:\n"
    "1. Your ENTIRE response must be valid JSON that can be parsed by a "
    "JSON parser\n"
    "2. DO NOT include any explanation, greeting, markdown formatting, or "
    "additional text\n"
    "3. DO NOT repeat the code in your response unless in the improvedCode "
    "field\n"
    "4. NEVER wrap your JSON in code blocks or quotation marks\n"
    "5. Your response must match EXACTLY the format below\n"
    "\n"
    "JSON FORMAT:\n"
    + RESULT_SCHEMA
    + "\n"
    + _OUTPUT_RULES
    + "[/INST]</s>\n"
)


def focus_for(review_type: ReviewType) -> str:
    """Return the emphasis sentence for *review_type*."""
    return FOCUS_INSTRUCTIONS.get(review_type, "")


def build_review_prompt(submission: CodeSubmission, template: str = REVIEW_PROMPT) -> str:
    """Fill *template* with the submission's language, focus and code."""
    return template.format(
        language=submission.language,
        focus=focus_for(submission.review_type),
        code=submission.code,
    )
