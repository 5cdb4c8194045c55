import pytest

from pokequiz.services.quiz.scoring import BASE_POINTS, MAX_BONUS_POINTS, calculate_score


def test_incorrect_scores_zero():
    assert calculate_score(False, 15, 15) == 0
    assert calculate_score(False, 0, 15) == 0


def test_correct_with_fraction_of_time_left():
    # 200 + floor(200 * 10 / 15) = 200 + 133
    assert calculate_score(True, 10, 15) == 333


@pytest.mark.parametrize('remaining,expected', [(0, 200), (15, 400), (7.5, 300), (1, 213)])
def test_bonus_is_linear_and_floored(remaining, expected):
    assert calculate_score(True, remaining, 15) == expected


def test_result_is_int():
    points = calculate_score(True, 2.9, 7)
    assert isinstance(points, int)
    assert points == BASE_POINTS + int(MAX_BONUS_POINTS * 2.9 / 7)
