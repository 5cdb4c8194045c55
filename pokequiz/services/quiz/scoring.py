import math

# Points for any correct answer, regardless of speed
BASE_POINTS = 200
# Extra points for answering with the whole timer left
MAX_BONUS_POINTS = 200
INCORRECT_POINTS = 0


def calculate_score(correct: bool, time_remaining: float, total_time: float) -> int:
    """Points for a single answer.

    Correct answers earn BASE_POINTS plus a speed bonus that scales linearly
    with the fraction of time left. ``time_remaining`` must already be clamped
    to ``[0, total_time]`` by the caller.
    """
    if not correct:
        return INCORRECT_POINTS
    bonus = math.floor(MAX_BONUS_POINTS * time_remaining / total_time)
    return BASE_POINTS + int(bonus)
