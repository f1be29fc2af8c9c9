"""
Domain Constants

Centrally manages constants shared across the evaluator.
"""

# Metric catalog (the same labels are rendered as buttons by the dashboard)
METRIC_CATALOG: tuple[str, ...] = (
    "Clarity of problem articulation",
    "Purpose statement strength",
    "Logical flow of explanation",
    "Audience understanding level",
    "Concept simplification quality",
    "Technical accuracy of explanations",
    "Confidence in voice delivery",
    "Degree of passion conveyed",
    "Pacing and speed of narration",
    "Structural clarity of content",
    "Visual organization without styling",
    "Completeness of topic coverage",
    "Engagement level of the explanation",
    "Reasoning transparency",
    "Justification of technical decisions",
    "Clarity of transitions between topics",
    "Interview-readiness of communication",
    "Problem-solving mindset demonstration",
    "Career-oriented presentation quality",
)

# Selection sentinel for "evaluate every metric in the catalog"
ALL_METRICS = "all"

# Title used in the prompt when none is supplied or stored
DEFAULT_TITLE = "Unknown Title"

# Rendered in place of an optional request field that was not supplied
MISSING_FIELD_PLACEHOLDER = "N/A"

# Scoring scale requested from the backend (not enforced on replies)
SCORE_MIN = 1
SCORE_MAX = 10

# Maximum number of cross-metric suggestions requested
MAX_COMMON_IMPROVEMENTS = 5

# Default backend strategy chain (tried in order)
DEFAULT_STRATEGIES = ["gemini", "gemini-rest"]

DEFAULT_MODEL = "gemini-2.0-flash"
