"""Application constants.

Input limits, display labels for pipeline states and the
user-facing copy for error categories.
"""

# ---------------------------------------------------------------------------
# Action input limits
# ---------------------------------------------------------------------------
MIN_REMARK_LENGTH: int = 10
MAX_REMARK_LENGTH: int = 1000
MIN_RATING: int = 1
MAX_RATING: int = 5

# ---------------------------------------------------------------------------
# Display labels
# ---------------------------------------------------------------------------
STATE_LABELS: dict[str, str] = {
    "TO_REVIEW": "To Review",
    "INTERVIEW_SCHEDULED": "Interview Scheduled",
    "SELECTED": "Selected",
    "JOINED": "Joined",
    "REJECTED": "Rejected",
    "LEFT_COMPANY": "Left Company",
}

# ---------------------------------------------------------------------------
# User-facing error copy
# ---------------------------------------------------------------------------
GENERIC_ERROR_CODE: str = "UNKNOWN_ERROR"
GENERIC_ERROR_MESSAGE: str = "Something went wrong. Please try again."

SESSION_ERROR_MESSAGES: dict[str, str] = {
    "expired": "Your session has expired. Please sign in again.",
    "revoked": "Your access has been revoked. Contact your account manager.",
    "invalid": "Your access link is invalid. Please sign in again.",
}
