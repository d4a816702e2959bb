from datetime import time

from services.overlap import overlaps


def test_partial_overlap_is_detected():
    assert overlaps(time(9), time(11), time(10), time(10, 30))
    assert overlaps(time(9), time(10), time(9, 30), time(10, 30))


def test_overlap_is_symmetric():
    a = (time(9), time(10))
    b = (time(9, 30), time(11))
    assert overlaps(*a, *b) == overlaps(*b, *a)


def test_containment_overlaps():
    assert overlaps(time(8), time(12), time(9), time(10))
    assert overlaps(time(9), time(10), time(8), time(12))


def test_identical_intervals_overlap():
    assert overlaps(time(9), time(10), time(9), time(10))


def test_touching_endpoints_do_not_overlap():
    """Back-to-back slots share a boundary but not a minute."""
    assert not overlaps(time(9), time(10), time(10), time(11))
    assert not overlaps(time(10), time(11), time(9), time(10))


def test_disjoint_intervals_do_not_overlap():
    assert not overlaps(time(8), time(9), time(13), time(14))
