"""
risk/labels.py

Churn-risk classification used for member filtering and display.
Thresholds are inclusive lower bounds and must not drift: saved filters
depend on them.
"""

_RISK_LABELS: tuple[tuple[int, str], ...] = (
    (60, "High"),
    (30, "Medium"),
    (0, "Low"),
)

_RISK_COLORS: dict[str, str] = {
    "High": "red",
    "Medium": "yellow",
    "Low": "green",
}


def get_churn_risk_label(score: int) -> str:
    """Map a churn-risk score to ``"Low"``, ``"Medium"`` or ``"High"``."""
    for threshold, label in _RISK_LABELS:
        if score >= threshold:
            return label
    return "Low"


def get_churn_risk_color(score: int) -> str:
    return _RISK_COLORS[get_churn_risk_label(score)]
