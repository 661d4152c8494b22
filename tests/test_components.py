import numpy as np

from objseg_service.components import (
    Region,
    keep_regions,
    label_components,
    min_keep_area,
    remove_small_regions,
)


def test_min_keep_area():
    assert min_keep_area(100, 100, 200) == 200
    assert min_keep_area(100, 100, 50) == 100
    assert min_keep_area(2000, 2000, 50) == 4000


def test_labels_follow_raster_discovery_order():
    mask = np.zeros((6, 10), dtype=bool)
    mask[0, 2] = True  # first component, starts at row 0
    mask[3:6, 0:2] = True  # third: first pixel on row 3
    mask[0:5, 7:9] = True  # second: first pixel at (0, 7)
    labels, areas = label_components(mask)
    assert labels[0, 2] == 1
    assert labels[0, 7] == 2
    assert labels[4, 0] == 3
    np.testing.assert_array_equal(areas, [1, 10, 6])


def test_diagonal_neighbors_are_separate_components():
    mask = np.eye(4, dtype=bool)
    labels, areas = label_components(mask)
    assert len(areas) == 4
    assert labels[0, 0] == 1 and labels[3, 3] == 4


def test_full_mask_is_one_component():
    labels, areas = label_components(np.ones((5, 7), dtype=bool))
    assert np.all(labels == 1)
    np.testing.assert_array_equal(areas, [35])


def test_empty_mask_has_no_components():
    labels, areas = label_components(np.zeros((5, 5), dtype=bool))
    assert len(areas) == 0
    assert not labels.any()


def test_rejected_components_consume_their_id():
    mask = np.zeros((20, 20), dtype=bool)
    mask[0, 0:3] = True  # 3 px, discovered first
    mask[5:17, 5:15] = True  # 120 px
    kept, regions = keep_regions(mask, 100)
    assert regions == [Region(id=2, area_px=120, area_percent=30.0)]
    assert not kept[0, 0:3].any()
    assert kept[5:17, 5:15].all()
    assert kept.sum() == 120


def test_keep_regions_threshold_is_inclusive():
    mask = np.zeros((10, 10), dtype=bool)
    mask[0:2, 0:5] = True
    _, regions = keep_regions(mask, 10)
    assert [r.area_px for r in regions] == [10]


def test_remove_small_regions():
    mask = np.zeros((10, 10), dtype=bool)
    mask[0, 0] = True
    mask[4:8, 4:8] = True
    out = remove_small_regions(mask, 16)
    assert not out[0, 0]
    assert out.sum() == 16
