"""Tests for AI-mode match scoring."""

import random

import pytest

from buzzberry.services.match_scoring import RandomMatchScoring, assign_match_scores, sort_by_match_score
from buzzberry.services.models import Creator


def _creator(cid, score=None):
    return Creator(id=cid, username=cid, username_tag=f"@{cid}", match_score=score)


class FixedScoring:
    def __init__(self, scores):
        self.scores = scores

    def score(self, creator):
        return self.scores[creator.id]


class TestRandomMatchScoring:
    def test_scores_in_range(self):
        strategy = RandomMatchScoring(rng=random.Random(7))
        scores = [strategy.score(_creator("a")) for _ in range(500)]
        assert min(scores) >= 60
        assert max(scores) < 100

    def test_seeded_rng_is_reproducible(self):
        a = RandomMatchScoring(rng=random.Random(1))
        b = RandomMatchScoring(rng=random.Random(1))
        assert [a.score(_creator("x")) for _ in range(5)] == [b.score(_creator("x")) for _ in range(5)]

    def test_rejects_empty_range(self):
        with pytest.raises(ValueError):
            RandomMatchScoring(low=80, high=80)


class TestAssignAndSort:
    def test_assign_returns_copies(self):
        original = [_creator("a"), _creator("b")]
        scored = assign_match_scores(original, FixedScoring({"a": 70, "b": 90}))
        assert [c.match_score for c in scored] == [70, 90]
        assert all(c.match_score is None for c in original)

    def test_sort_directions(self):
        creators = [_creator("a", 70), _creator("b", 90), _creator("c", 80)]
        assert [c.id for c in sort_by_match_score(creators)] == ["b", "c", "a"]
        assert [c.id for c in sort_by_match_score(creators, "asc")] == ["a", "c", "b"]
