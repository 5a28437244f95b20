import pytest

from particlevis.path import Path, PathRecorder, load_points, preset_points, save_points

CENTER = (400.0, 300.0)


def test_point_at_zero_is_first_point():
    path = Path([(10, 20), (110, 20), (110, 70)])
    assert path.point_at_distance(0, CENTER) == (10, 20)


def test_point_at_total_length_wraps_to_start():
    path = Path([(10, 20), (110, 20), (110, 70)])
    assert path.total_length == 150
    assert path.point_at_distance(path.total_length, CENTER) == path.point_at_distance(0, CENTER)


def test_midpoint_of_two_point_path():
    path = Path([(0, 0), (30, 40)])
    x, y = path.point_at_distance(path.total_length / 2, CENTER)
    assert (x, y) == pytest.approx((15, 20))


def test_cumulative_lengths_are_monotonic():
    path = Path([(0, 0), (3, 4), (3, 4), (6, 8)])
    assert len(path.lengths) == len(path.points) - 1
    assert all(b >= a for a, b in zip(path.lengths, path.lengths[1:]))


def test_distance_wraps_with_modulo():
    path = Path([(0, 0), (100, 0)])
    assert path.point_at_distance(130, CENTER) == pytest.approx((30, 0))
    assert path.point_at_distance(-10, CENTER) == pytest.approx((90, 0))


def test_boundary_distance_stays_on_earlier_segment():
    path = Path([(0, 0), (10, 0), (10, 10)])
    assert path.point_at_distance(10, CENTER) == pytest.approx((10, 0))
    assert path.point_at_distance(15, CENTER) == pytest.approx((10, 5))


def test_duplicate_points_return_segment_start():
    path = Path([(5, 5), (5, 5), (15, 5)])
    assert path.point_at_distance(0, CENTER) == (5, 5)
    assert path.point_at_distance(4, CENTER) == pytest.approx((9, 5))


@pytest.mark.parametrize("points", [[], [(3, 4)], [(3, 4), (3, 4)]])
def test_degenerate_path_falls_back(points):
    path = Path(points)
    assert not path.is_traversable
    assert path.point_at_distance(12.5, CENTER) == CENTER


def test_set_points_with_one_point_clears_lengths():
    path = Path([(0, 0), (10, 0)])
    path.set_points([(1, 1)])
    assert path.lengths == []
    assert path.total_length == 0


def test_preset_points():
    assert len(preset_points("circle", 800, 600)) == 201
    line = preset_points("line", 800, 600)
    assert line[0] == (0, 300) and line[-1] == (800, 300)
    square = preset_points("square", 800, 600)
    assert len(square) == 404
    assert square[0] == square[-1] == (220, 120)
    assert preset_points("triangle", 800, 600) == []


def test_circle_preset_radius():
    circle = Path(preset_points("circle", 800, 600))
    for x, y in circle.points:
        assert ((x - 400) ** 2 + (y - 300) ** 2) ** 0.5 == pytest.approx(180)


def test_recorder_only_records_while_drawing():
    recorder = PathRecorder()
    assert not recorder.append(1, 1)
    recorder.begin()
    assert recorder.append(0, 0)
    assert not recorder.append(1, 1)  # too close to the previous point
    assert recorder.append(10, 0)
    assert recorder.end() == [(0, 0), (10, 0)]
    assert not recorder.append(20, 0)


def test_recorder_continues_previous_stroke():
    recorder = PathRecorder()
    recorder.begin([(0, 0), (10, 0)])
    recorder.append(10, 10)
    assert recorder.end() == [(0, 0), (10, 0), (10, 10)]


def test_points_file_round_trip(tmp_path):
    target = tmp_path / "path.json"
    save_points([(1.5, 2.0), (3.25, 4.0)], target)
    assert load_points(target) == [(1.5, 2.0), (3.25, 4.0)]
