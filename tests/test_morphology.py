import numpy as np
import pytest

from objseg_service.morphology import (
    close_mask,
    constrained_grow,
    dilate,
    erode,
    fill_holes,
    gradient_edges,
    open_mask,
    opening_by_reconstruction,
)


def _random_masks(count=5, shape=(40, 50)):
    rng = np.random.default_rng(11)
    return [rng.random(shape) < p for p in np.linspace(0.2, 0.8, count)]


def test_erode_treats_outside_as_unset():
    full = np.ones((5, 5), dtype=bool)
    expected = np.zeros((5, 5), dtype=bool)
    expected[1:4, 1:4] = True
    np.testing.assert_array_equal(erode(full), expected)


def test_dilate_uses_full_neighborhood():
    mask = np.zeros((5, 5), dtype=bool)
    mask[2, 2] = True
    out = dilate(mask)
    assert out[1:4, 1:4].all()
    assert out.sum() == 9

    corner = np.zeros((5, 5), dtype=bool)
    corner[0, 0] = True
    assert dilate(corner).sum() == 4


def test_open_removes_specks_and_keeps_blocks():
    mask = np.zeros((12, 12), dtype=bool)
    mask[1, 1] = True
    mask[4:9, 4:9] = True
    out = open_mask(mask, 1)
    assert not out[1, 1]
    np.testing.assert_array_equal(out[4:9, 4:9], True)
    assert out.sum() == 25


def test_close_bridges_single_pixel_gap():
    mask = np.zeros((9, 12), dtype=bool)
    mask[3:6, 2:5] = True
    mask[3:6, 6:9] = True
    out = close_mask(mask, 1)
    assert out[3:6, 5].all()


@pytest.mark.parametrize("mask", _random_masks())
def test_open_and_close_are_idempotent(mask):
    once = open_mask(mask, 1)
    np.testing.assert_array_equal(open_mask(once, 1), once)
    closed = close_mask(mask, 1)
    np.testing.assert_array_equal(close_mask(closed, 1), closed)


@pytest.mark.parametrize("mask", _random_masks())
def test_edges_lie_between_erosion_and_dilation(mask):
    edges = gradient_edges(mask)
    assert not np.any(edges & ~dilate(mask))
    assert not np.any(edges & erode(mask))


def test_fill_holes_closes_interior_only():
    mask = np.zeros((9, 9), dtype=bool)
    mask[1:8, 1:8] = True
    mask[3:6, 3:6] = False  # hole
    mask[4, 0:2] = False  # notch open to the border
    out = fill_holes(mask)
    assert out[3:6, 3:6].all()
    assert not out[4, 0] and not out[4, 1]


def test_fill_holes_uses_4_connectivity():
    mask = np.ones((3, 3), dtype=bool)
    mask[0, 0] = False
    mask[1, 1] = False  # touches the outside only diagonally
    out = fill_holes(mask)
    assert out[1, 1]
    assert not out[0, 0]


@pytest.mark.parametrize("mask", _random_masks())
def test_fill_holes_is_idempotent(mask):
    once = fill_holes(mask)
    np.testing.assert_array_equal(fill_holes(once), once)
    assert not np.any(mask & ~once)


def test_fill_holes_on_full_mask():
    full = np.ones((4, 4), dtype=bool)
    np.testing.assert_array_equal(fill_holes(full), full)


def _bar_with_tail():
    mask = np.zeros((7, 30), dtype=bool)
    mask[2:5, 2:7] = True  # 3x5 block
    mask[3, 7:21] = True  # one-pixel tail
    mask[3, 25:28] = True  # detached thin stub
    return mask


def test_opening_by_reconstruction_restores_attached_detail():
    mask = _bar_with_tail()
    out = opening_by_reconstruction(mask, erosion_rounds=1)
    assert out[2:5, 2:7].all()
    assert out[3, 7:21].all()
    assert not out[3, 25:28].any()


def test_reconstruction_respects_iteration_cap():
    mask = _bar_with_tail()
    full = opening_by_reconstruction(mask, erosion_rounds=1)
    capped = opening_by_reconstruction(mask, erosion_rounds=1, max_iterations=1)
    assert not np.any(capped & ~full)
    assert capped[2:5, 2:7].all()
    assert not capped[3, 20]


def test_constrained_grow_stays_inside_allow():
    mask = np.zeros((10, 10), dtype=bool)
    mask[5, 5] = True
    allow = np.zeros((10, 10), dtype=bool)
    allow[:, 3:8] = True
    out = constrained_grow(mask, allow, 2)
    assert not np.any(out & ~allow)
    assert out[3:8, 3:8].all()
    assert out.sum() == 25
