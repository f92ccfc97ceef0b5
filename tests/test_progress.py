from types import SimpleNamespace

import pytest

from studypal.features.assignments.progress import SubtaskProgress, compute_progress, percentage


def _subtasks(*flags):
    return [SimpleNamespace(completed=flag) for flag in flags]


def test_no_subtasks_is_zero_percent():
    assert compute_progress([]) == SubtaskProgress(completed=0, total=0, percentage=0)


def test_all_completed_is_hundred():
    assert compute_progress(_subtasks(True, True, True)).percentage == 100


def test_one_of_three_rounds_to_33():
    progress = compute_progress(_subtasks(True, False, False))
    assert (progress.completed, progress.total, progress.percentage) == (1, 3, 33)


@pytest.mark.parametrize(
    "completed,total,expected",
    [(2, 3, 67), (1, 8, 13), (3, 8, 38), (0, 5, 0), (0, 0, 0)],
)
def test_percentage_rounds_half_up(completed, total, expected):
    assert percentage(completed, total) == expected


def test_to_dict():
    assert compute_progress(_subtasks(True, False)).to_dict() == {"completed": 1, "total": 2, "percentage": 50}
