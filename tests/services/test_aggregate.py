"""
Tests for result projection.
"""

import pytest

from validtot.schemas.post import PostOptionView, PostView
from validtot.services.aggregate import (
    format_vote_total,
    percentage,
    project_post,
    project_results,
    round_half_up,
)


@pytest.mark.unit
class TestPercentages:
    def test_round_half_up(self) -> None:
        assert round_half_up(66.5) == 67
        assert round_half_up(33.49) == 33
        assert round_half_up(0.5) == 1

    def test_zero_total(self) -> None:
        assert percentage(0, 0) == 0

    def test_two_to_one(self) -> None:
        result = project_results([2, 1], 3)
        assert [o.percentage for o in result.options] == [67, 33]

    def test_percentages_may_exceed_100_in_sum(self) -> None:
        # 1/8 = 12.5 -> 13 for each of three options at 1 vote, plus 62.5 -> 63
        result = project_results([5, 1, 2], 8)
        assert [o.percentage for o in result.options] == [63, 13, 25]
        assert sum(o.percentage for o in result.options) == 101

    def test_percentages_may_fall_short_of_100(self) -> None:
        result = project_results([1, 1, 1], 3)
        assert [o.percentage for o in result.options] == [33, 33, 33]

    def test_percentage_is_capped(self) -> None:
        # Counters briefly ahead of the total
        result = project_results([3], 2)
        assert result.options[0].percentage == 100


@pytest.mark.unit
class TestProjection:
    def test_total_label(self) -> None:
        assert format_vote_total(0) == "0 votes"
        assert format_vote_total(1) == "1 vote"
        assert format_vote_total(2) == "2 votes"

    def test_labels_limit_options(self) -> None:
        result = project_results([4, 1, 9], 5, labels=["Cat", "Dog"])
        assert [o.label for o in result.options] == ["Cat", "Dog"]
        assert [o.vote_count for o in result.options] == [4, 1]

    def test_short_tally_padded_for_labels(self) -> None:
        result = project_results([2], 2, labels=["Cat", "Dog"])
        assert [o.vote_count for o in result.options] == [2, 0]

    def test_project_post(self) -> None:
        post = PostView(
            id="p1",
            title="Cat or Dog",
            owner_id="owner-1",
            options=(
                PostOptionView(position=0, label="Cat", image_url="https://img/cat.png"),
                PostOptionView(position=1, label="Dog", image_url="https://img/dog.png"),
            ),
            tally=(2, 1),
            total_votes=3,
        )
        result = project_post(post)
        assert result.total_votes == 3
        assert result.total_label == "3 votes"
        assert [(o.label, o.percentage) for o in result.options] == [("Cat", 67), ("Dog", 33)]
