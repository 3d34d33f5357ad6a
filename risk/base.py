"""
risk/base.py

Abstract base interface for member scoring models.
All member score implementations must inherit from BaseMemberScoreModel.
"""

from abc import ABC, abstractmethod

from risk.profile import MemberProfile


class BaseMemberScoreModel(ABC):
    """Abstract base class for per-member scoring models.

    Defines the interface that all member score implementations
    must follow. Every score is an integer on a 0–100 scale computed
    from one member's read-only slice of payments and memberships.
    """

    @abstractmethod
    def compute(self, profile: MemberProfile) -> int:
        """Compute a score for one member.

        Args:
            profile: The member, their payments and memberships, plus
                     derived tenure and reference time.

        Returns:
            An integer in [0, 100]. Interpretation of the score is
            defined by the implementing subclass.

        Raises:
            NotImplementedError: If the subclass does not implement
                                 this method.
        """
        raise NotImplementedError("Subclasses must implement compute()")
