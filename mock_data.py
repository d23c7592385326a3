"""Mock responses for testing without API calls."""

# Shaped like a real Gemini answer for a small Python snippet
MOCK_RESPONSE = """```json
{
  "metrics": {
    "overall": {"grade": "B", "score": 82},
    "maintainability": {"grade": "B+", "score": 86},
    "performance": {"grade": "A-", "score": 90},
    "security": {"grade": "A", "score": 94}
  },
  "comments": [
    {
      "line": 3,
      "text": "The `calculate_average` function will raise a `ZeroDivisionError` if an empty list is passed, as `len(numbers)` will be 0.",
      "type": "error",
      "suggestion": "if not numbers:\\n        return 0.0"
    },
    {
      "line": 1,
      "text": "Add type hints to make the expected input explicit.",
      "type": "suggestion",
      "suggestion": "def calculate_average(numbers: list[float]) -> float:"
    }
  ],
  "improvedCode": "def calculate_average(numbers: list[float]) -> float:\\n    if not numbers:\\n        return 0.0\\n    return sum(numbers) / len(numbers)\\n",
  "keyImprovements": [
    "Guard against empty input",
    "Add type hints"
  ],
  "issues": {
    "critical": 1,
    "warnings": 0,
    "info": 1,
    "types": [
      {
        "name": "Error Handling",
        "description": "Missing guard for empty input",
        "severity": "high"
      }
    ]
  }
}
```"""
