from rgbdodom.frame import Frame
from rgbdodom.map import Map
from rgbdodom.mappoint import MapPoint


def test_new_map_is_empty():
    world = Map()
    assert world.keyframes == {}
    assert world.map_points == {}


def test_insert_keyframe_indexes_by_id():
    world = Map()
    frame = Frame(id=4)
    world.insert_keyframe(frame)
    assert world.keyframes == {4: frame}


def test_insert_keyframe_replaces_same_id():
    world = Map()
    first = Frame(id=2)
    second = Frame(id=2)
    world.insert_keyframe(first)
    world.insert_keyframe(second)
    assert len(world.keyframes) == 1
    assert world.keyframes[2] is second


def test_insert_map_points():
    world = Map()
    points = [MapPoint.create() for _ in range(3)]
    for point in points:
        world.insert_map_point(point)
    assert set(world.map_points) == {p.id for p in points}


def test_insert_map_point_replaces_same_id():
    world = Map()
    first = MapPoint(id=7)
    second = MapPoint(id=7, pos=[1.0, 0.0, 0.0])
    world.insert_map_point(first)
    world.insert_map_point(second)
    assert world.map_points[7] is second