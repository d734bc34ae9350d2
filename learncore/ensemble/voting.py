"""
voting.py

Weighted-voting ensemble of categorizers.

Members are (member, weight) pairs kept in insertion order. A member is
either a callable x -> category or an object with evaluate(x). The
ensemble answers with the category that collects the largest total weight;
ties go to the category voted for first. A member answering None abstains.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, List, Optional, Sequence


def evaluate_member(member: Any, x: Any) -> Optional[Hashable]:
    """Ask one member for its category."""
    if hasattr(member, "evaluate"):
        return member.evaluate(x)
    return member(x)


@dataclass(frozen=True)
class WeightedMember:
    member: Any
    weight: float = 1.0


class WeightedVotingCategorizerEnsemble:
    """
    Ordered list of weighted categorizers that vote on an input.

    Parameters
    ----------
    categories : iterable, optional
        Known output categories (informational).
    members : iterable of WeightedMember, optional
    """

    def __init__(
        self,
        categories: Optional[Iterable[Hashable]] = None,
        members: Optional[Iterable[WeightedMember]] = None,
    ) -> None:
        self.categories = list(categories) if categories is not None else []
        self._members: List[WeightedMember] = list(members) if members is not None else []

    @property
    def members(self) -> Sequence[WeightedMember]:
        """Read-only snapshot of the members."""
        return tuple(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def add(self, member: Any, weight: float = 1.0) -> None:
        if weight < 0.0:
            raise ValueError(f"member weight must be non-negative, got: {weight}")
        self._members.append(WeightedMember(member, float(weight)))

    def truncate(self, size: int) -> None:
        """Keep only the first size members."""
        if size < 0:
            raise ValueError(f"size must be non-negative, got: {size}")
        del self._members[size:]

    def vote(self, x: Any, members: Optional[Iterable[WeightedMember]] = None) -> Counter:
        """Total weight per category (Counter keeps first-vote order)."""
        votes: Counter = Counter()
        for weighted in (self._members if members is None else members):
            guess = evaluate_member(weighted.member, x)
            if guess is not None:
                votes[guess] += weighted.weight
        return votes

    @staticmethod
    def winner(votes: Counter) -> Optional[Hashable]:
        """Category with the largest positive weight; None if nobody voted."""
        if not votes:
            return None
        category, weight = votes.most_common(1)[0]
        if weight <= 0.0:
            return None
        return category

    def evaluate(self, x: Any) -> Optional[Hashable]:
        return self.winner(self.vote(x))

    def evaluate_subset(self, x: Any, indices: Iterable[int]) -> Optional[Hashable]:
        """Vote using only the members at the given positions."""
        return self.winner(self.vote(x, [self._members[i] for i in indices]))

    def __call__(self, x: Any) -> Optional[Hashable]:
        return self.evaluate(x)


__all__ = [
    "evaluate_member",
    "WeightedMember",
    "WeightedVotingCategorizerEnsemble",
]
