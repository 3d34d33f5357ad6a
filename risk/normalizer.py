"""
risk/normalizer.py

Deterministic bounding utilities for member score outputs.
"""

from decimal import ROUND_HALF_UP, Decimal


class ScoreNormalizer:
    """Provides stateless helpers that turn raw point sums into scores.

    All methods are deterministic and produce bounded outputs.
    No external dependencies, state, or side effects.
    """

    MIN_SCORE: int = 0
    MAX_SCORE: int = 100

    def clamp(self, value: float, min_value: float, max_value: float) -> float:
        """Clamp a value to the specified [min_value, max_value] range.

        Args:
            value: The float to clamp.
            min_value: The lower bound of the output range.
            max_value: The upper bound of the output range.

        Returns:
            value if within bounds, otherwise min_value or max_value.
        """
        return max(min_value, min(value, max_value))

    def to_score(self, points: float) -> int:
        """Round a point sum half-up and clamp it to [0, 100].

        Args:
            points: Raw additive point total.

        Returns:
            An integer score in [0, 100].
        """
        rounded = int(Decimal(str(points)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return int(self.clamp(rounded, self.MIN_SCORE, self.MAX_SCORE))
