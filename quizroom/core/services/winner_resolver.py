"""Service for turning participant scores into a leaderboard and a winner."""

from __future__ import annotations

from collections.abc import Mapping

from quizroom.core.errors import ValidationError
from quizroom.core.models import LeaderboardEntry, Resolution


class WinnerResolver:
    """Ranks scores descending. Ties keep the order the scores were given in."""

    def rank(self, scores: Mapping[str, int]) -> list[LeaderboardEntry]:
        ordered = sorted(scores.items(), key=lambda item: -item[1])
        leaderboard: list[LeaderboardEntry] = []
        for position, (identity, score) in enumerate(ordered):
            if leaderboard and leaderboard[-1].score == score:
                rank = leaderboard[-1].rank
            else:
                rank = position + 1
            leaderboard.append(LeaderboardEntry(rank=rank, identity=identity, score=score))
        return leaderboard

    def resolve(self, scores: Mapping[str, int]) -> Resolution:
        """Pick the highest score; the first participant seen wins a tie."""
        leaderboard = self.rank(scores)
        if not leaderboard:
            return Resolution(winner_identity=None, score=0, leaderboard=[])
        top = leaderboard[0]
        return Resolution(winner_identity=top.identity, score=top.score, leaderboard=leaderboard)

    def top_n(self, scores: Mapping[str, int], n: int) -> list[LeaderboardEntry]:
        if n < 0:
            raise ValidationError("Leaderboard size must not be negative.")
        return self.rank(scores)[:n]
