import numpy as np

from objseg_service.clustering import border_background_cluster, cluster_count, kmeans


class _FixedRng:
    """Generator stand-in that always samples the given pixel indices."""

    def __init__(self, indices):
        self.indices = np.asarray(indices)

    def integers(self, low, high, size):
        return self.indices[:size]


def test_cluster_count_switches_at_200x200():
    assert cluster_count(199, 201) == 3
    assert cluster_count(200, 200) == 4
    assert cluster_count(4000, 50) == 4


def test_kmeans_is_deterministic_for_a_seed():
    rng = np.random.default_rng(7)
    features = rng.normal(size=(30, 40, 3)).astype(np.float32) * 20
    a = kmeans(features, 4, rng=np.random.default_rng(12345))
    b = kmeans(features, 4, rng=np.random.default_rng(12345))
    np.testing.assert_array_equal(a, b)
    assert a.shape == (30, 40)


def test_kmeans_separates_two_colors():
    features = np.zeros((10, 10, 3), dtype=np.float32)
    features[:, 5:] = [80.0, 10.0, -10.0]
    labels = kmeans(features, 3)
    left = np.unique(labels[:, :5])
    right = np.unique(labels[:, 5:])
    assert len(left) == 1 and len(right) == 1
    assert left[0] != right[0]


def test_identical_pixels_all_go_to_cluster_zero():
    features = np.full((6, 6, 3), 42.0, dtype=np.float32)
    labels = kmeans(features, 3)
    assert np.all(labels == 0)


def test_duplicate_seeds_and_empty_clusters_keep_their_centroid():
    # every centroid starts on pixel 0 (color A); ties send everything to
    # cluster 0, clusters 1 and 2 stay empty and keep color A
    features = np.zeros((20, 3), dtype=np.float32)
    features[10:] = [10.0, 0.0, 0.0]
    labels = kmeans(features, 3, rng=_FixedRng([0, 0, 0]))
    np.testing.assert_array_equal(labels[:10], 1)
    np.testing.assert_array_equal(labels[10:], 0)


def test_single_iteration_returns_first_assignment():
    features = np.zeros((20, 3), dtype=np.float32)
    features[10:] = [10.0, 0.0, 0.0]
    labels = kmeans(features, 3, max_iterations=1, rng=_FixedRng([0, 0, 0]))
    assert np.all(labels == 0)


def test_border_vote_majority():
    clusters = np.full((4, 4), 0)
    clusters[0, :] = 1
    clusters[3, :] = 1
    clusters[1:3, 0] = 2
    clusters[1:3, 3] = 2
    assert border_background_cluster(clusters, 3) == 1


def test_border_vote_tie_goes_to_lowest_id():
    clusters = np.array(
        [
            [2, 2, 2],
            [0, 1, 0],
            [1, 1, 1],
        ]
    )
    # votes: 2 -> 3, 1 -> 3, 0 -> 2; the interior pixel does not vote
    assert border_background_cluster(clusters, 3) == 1


def test_border_vote_counts_corners_once():
    clusters = np.array(
        [
            [1, 0, 1],
            [0, 1, 0],
            [1, 0, 1],
        ]
    )
    # corners vote once through the rows: 1 -> 4, 0 -> 4, tie -> 0
    assert border_background_cluster(clusters, 2) == 0
