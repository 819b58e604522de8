import numpy as np
import pytest

from rgbdodom.frame import Frame
from rgbdodom.mappoint import MapPoint


def test_default_point_has_no_observations():
    point = MapPoint()
    assert point.visible_times == 0
    assert point.matched_times == 0
    assert point.good is True
    np.testing.assert_array_equal(point.pos, np.zeros(3))


def test_create_without_arguments():
    point = MapPoint.create()
    assert point.visible_times == 1
    assert point.matched_times == 1
    assert point.observed_frames == []
    np.testing.assert_array_equal(point.norm, np.zeros(3))


def test_create_ids_increase():
    first = MapPoint.create()
    second = MapPoint.create()
    assert second.id == first.id + 1


def test_create_with_values():
    frame = Frame(id=3)
    descriptor = np.arange(32, dtype=np.uint8)
    point = MapPoint.create([1.0, 2.0, 3.0], [0.0, 0.0, 1.0], descriptor, frame)
    np.testing.assert_array_equal(point.pos, [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(point.norm, [0.0, 0.0, 1.0])
    np.testing.assert_array_equal(point.descriptor, descriptor)
    assert point.observed_frames == [frame]


def test_position_is_copied():
    position = np.array([1.0, 1.0, 1.0])
    point = MapPoint.create(position)
    position[0] = 9.0
    np.testing.assert_array_equal(point.pos, [1.0, 1.0, 1.0])


def test_bad_position_rejected():
    with pytest.raises(ValueError):
        MapPoint.create([1.0, 2.0])