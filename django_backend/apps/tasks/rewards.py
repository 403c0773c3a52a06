"""
Reward rules for completed tasks: XP per priority, rank thresholds and the
daily streak.

Everything in this module is pure. Callers pass the member's current reward
state (any object with ``xp``, ``today_xp``, ``streak``, ``tasks_completed``
and ``last_completed_date``) and the calendar day of the completion, then
store the returned values themselves.
"""
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

XP_VALUES = {"P0": 50, "P1": 30, "P2": 20, "P3": 10}

# Priorities outside XP_VALUES are rewarded as P2.
FALLBACK_PRIORITY = "P2"


@dataclass(frozen=True)
class Rank:
    level: int
    xp: int
    name: str


# Ascending by xp threshold.
RANKS = (
    Rank(level=1, xp=0, name="Rookie Trainer"),
    Rank(level=3, xp=150, name="Bug Catcher"),
    Rank(level=5, xp=400, name="Pokémon Ranger"),
    Rank(level=8, xp=800, name="Pokémon Breeder"),
    Rank(level=12, xp=1500, name="Ace Trainer"),
    Rank(level=18, xp=3000, name="Gym Challenger"),
    Rank(level=25, xp=5500, name="Gym Leader"),
    Rank(level=35, xp=10000, name="Elite Four"),
    Rank(level=50, xp=20000, name="Champion"),
    Rank(level=75, xp=40000, name="Pokémon Master"),
    Rank(level=100, xp=75000, name="Legendary Trainer"),
)

_THRESHOLDS = [rank.xp for rank in RANKS]


def xp_for_priority(priority) -> int:
    return XP_VALUES.get(priority, XP_VALUES[FALLBACK_PRIORITY])


def rank_for_xp(xp: int) -> Rank:
    """Highest rank whose threshold is at or below ``xp``."""
    index = bisect_right(_THRESHOLDS, xp) - 1
    return RANKS[max(index, 0)]


def next_rank(xp: int) -> Optional[Rank]:
    index = bisect_right(_THRESHOLDS, xp)
    if index >= len(RANKS):
        return None
    return RANKS[index]


def advance_streak(member, today: date) -> int:
    """
    Streak after a completion on ``today``.

    A completion the day after the last one extends the run, a second
    completion on the same day leaves it alone, anything else starts over.
    """
    last = member.last_completed_date
    if last == today - timedelta(days=1):
        return member.streak + 1
    if last == today:
        return member.streak
    return 1


def update_today_xp(member, today: date, earned: int) -> int:
    if member.last_completed_date == today:
        return member.today_xp + earned
    return earned


@dataclass(frozen=True)
class CompletionReward:
    xp_earned: int
    xp: int
    today_xp: int
    streak: int
    tasks_completed: int
    last_completed_date: date
    previous_rank: Rank
    rank: Rank

    @property
    def leveled_up(self) -> bool:
        return self.rank.level > self.previous_rank.level


def apply_completion(member, priority, today: date) -> CompletionReward:
    earned = xp_for_priority(priority)
    new_xp = member.xp + earned
    return CompletionReward(
        xp_earned=earned,
        xp=new_xp,
        today_xp=update_today_xp(member, today, earned),
        streak=advance_streak(member, today),
        tasks_completed=member.tasks_completed + 1,
        last_completed_date=today,
        previous_rank=rank_for_xp(member.xp),
        rank=rank_for_xp(new_xp),
    )
