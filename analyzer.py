"""Pattern analyzer: language-aware, line-by-line heuristic checks.

Rules are plain data: a trigger regex, an optional exclusion regex, the
comment to emit and an optional rewrite that produces a suggested
replacement line. Analysis is a pure function of (language, code).
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from models import CodeComment, CodeSubmission, CommentType

logger = logging.getLogger(__name__)

LONG_LINE_LIMIT = 100


@dataclass(frozen=True)
class Rule:
    """A single line-level heuristic."""

    pattern: str
    type: CommentType
    text: str
    exclude: str | None = None
    rewrite: Callable[[str], str] | None = None

    def check(self, line: str, line_no: int) -> CodeComment | None:
        if not re.search(self.pattern, line):
            return None
        if self.exclude and re.search(self.exclude, line):
            return None
        return CodeComment(
            line=line_no,
            text=self.text,
            type=self.type,
            suggestion=self.rewrite(line) if self.rewrite else None,
        )


# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------
JS_RULES: tuple[Rule, ...] = (
    Rule(
        pattern=r"console\.log",
        type="warning",
        text="Consider removing debug console.log statements in production code",
    ),
    Rule(
        pattern=r"\bvar\s",
        type="suggestion",
        text="Consider using 'let' or 'const' instead of 'var'",
        rewrite=lambda line: re.sub(r"\bvar\s", "const ", line, count=1),
    ),
    Rule(
        pattern=r" == ",
        exclude=r" === ",
        type="warning",
        text=(
            "Using loose equality (==) may lead to unexpected behavior. "
            "Consider using strict equality (===)"
        ),
        rewrite=lambda line: line.replace(" == ", " === ", 1),
    ),
)

PYTHON_RULES: tuple[Rule, ...] = (
    Rule(
        pattern=r"\bprint\(",
        type="suggestion",
        text="Consider using logging instead of print statements in production code",
    ),
    Rule(
        pattern=r"def\s+\w+\([^)]*=\s*\[\s*\][^)]*\)",
        type="warning",
        text=(
            "Using mutable default arguments (empty list) can lead to "
            "unexpected behavior"
        ),
    ),
    Rule(
        pattern=r"['\"].*['\"] \+ ",
        type="suggestion",
        text="Consider using f-strings for string formatting instead of concatenation",
    ),
)

JAVA_RULES: tuple[Rule, ...] = (
    Rule(
        pattern=r"System\.out\.println",
        type="suggestion",
        text=(
            "Consider using a logging framework instead of System.out.println "
            "in production code"
        ),
    ),
    Rule(
        pattern=r" == null",
        type="suggestion",
        text="Consider using Optional<> to avoid null checks",
    ),
)

CPP_RULES: tuple[Rule, ...] = (
    Rule(
        pattern=r"using namespace std;",
        type="warning",
        text=(
            "Avoid using 'using namespace std' in header files as it can lead "
            "to name conflicts"
        ),
    ),
    Rule(
        pattern=r"\w+\s*\*\s*\w+",
        type="suggestion",
        text=(
            "Consider using smart pointers (std::shared_ptr, std::unique_ptr) "
            "instead of raw pointers"
        ),
    ),
)

GENERIC_RULES: tuple[Rule, ...] = (
    Rule(
        pattern=rf"^.{{{LONG_LINE_LIMIT + 1},}}",
        type="suggestion",
        text=(
            f"Line is very long (over {LONG_LINE_LIMIT} characters). "
            "Consider breaking it up for readability"
        ),
    ),
    Rule(
        pattern=r"\s+$",
        type="info",
        text="Line contains trailing whitespace",
        rewrite=str.rstrip,
    ),
)

RULE_SETS: dict[str, tuple[Rule, ...]] = {
    "javascript": JS_RULES,
    "typescript": JS_RULES,
    "js": JS_RULES,
    "jsx": JS_RULES,
    "ts": JS_RULES,
    "tsx": JS_RULES,
    "python": PYTHON_RULES,
    "py": PYTHON_RULES,
    "java": JAVA_RULES,
    "c++": CPP_RULES,
    "cpp": CPP_RULES,
    "cxx": CPP_RULES,
}


def rules_for(language: str) -> tuple[Rule, ...]:
    """Return the rule set for *language*, or the generic one."""
    return RULE_SETS.get(language.strip().lower(), GENERIC_RULES)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
def analyze_code(code: str, language: str) -> list[CodeComment]:
    """Scan *code* line by line and return the findings in line order."""
    if not code.strip():
        return [CodeComment(line=1, text="Code is empty", type="error")]

    rules = rules_for(language)
    findings: list[CodeComment] = []

    for line_no, line in enumerate(code.split("\n"), start=1):
        for rule in rules:
            comment = rule.check(line, line_no)
            if comment is not None:
                findings.append(comment)

    logger.debug("Pattern analysis (%s): %d finding(s)", language, len(findings))
    return findings


def analyze(submission: CodeSubmission) -> list[CodeComment]:
    """Run the pattern analyzer over a submission."""
    return analyze_code(submission.code, submission.language)
