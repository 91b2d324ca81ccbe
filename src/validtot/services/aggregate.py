"""
Aggregate Projection

Turns stored tallies into display percentages. Stateless.

Each percentage is rounded on its own (half up), so a post's percentages
may add up to 99 or 101. That is accepted display behaviour.

The stored aggregate can briefly trail the ledger (a vote that is already
recorded may not be counted yet); projections show whatever the post's
counters say at read time.
"""

import math
from typing import Optional, Sequence

from validtot.schemas.post import PostView
from validtot.schemas.results import OptionResult, ResultsView


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(count / total * 100)


def format_vote_total(total: int) -> str:
    """'1 vote', '2 votes'."""
    return f"{total} vote{'' if total == 1 else 's'}"


def project_results(
    tally: Sequence[int],
    total: int,
    labels: Optional[Sequence[str]] = None,
) -> ResultsView:
    """
    Project a tally vector and total into per-option results.

    When labels are given, only as many options as labels are shown;
    extra tally entries are ignored.
    """
    counts = list(tally)
    if labels is not None:
        counts.extend([0] * (len(labels) - len(counts)))
        counts = counts[: len(labels)]

    options = [
        OptionResult(
            option_index=index,
            label=labels[index] if labels is not None else None,
            vote_count=count,
            percentage=min(100, percentage(count, total)),
        )
        for index, count in enumerate(counts)
    ]
    return ResultsView(options=options, total_votes=total, total_label=format_vote_total(total))


def project_post(post: PostView) -> ResultsView:
    return project_results(post.tally, post.total_votes, post.labels)
