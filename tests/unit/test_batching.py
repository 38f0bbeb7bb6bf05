"""Unit tests for batch sizing and word ordering."""

from vocabtrans.core.batching import (
    AdaptiveBatchController,
    create_batches,
    prioritize_words,
    smart_batch_size,
    word_priority,
)


def test_smart_batch_size():
    assert smart_batch_size("comprehensive") == 3
    assert smart_batch_size("professional") == 5
    assert smart_batch_size("standard") == 8
    assert smart_batch_size("unknown") == 6


def test_word_priority():
    """Non-ASCII words outrank any ASCII word; length breaks ties."""
    assert word_priority("café") > word_priority("a" * 100)
    assert word_priority("elephant") > word_priority("cat")
    assert word_priority("x" * 500) == 100


def test_prioritize_words_is_stable():
    words = ["cat", "dog", "straße", "ant", "elephant"]
    assert prioritize_words(words) == ["straße", "elephant", "cat", "dog", "ant"]


def test_create_batches():
    words = ["a", "b", "c", "d", "e"]
    assert create_batches(words, 2) == [["a", "b"], ["c", "d"], ["e"]]
    assert create_batches(words, 0) == [["a"], ["b"], ["c"], ["d"], ["e"]]
    assert create_batches([], 3) == []


class TestAdaptiveBatchController:
    """Test growth and shrinkage of the batch size."""

    def test_grows_after_five_successes(self):
        controller = AdaptiveBatchController(5, max_size=20)
        for _ in range(4):
            controller.on_success()
        assert controller.batch_size == 5

        controller.on_success()
        assert controller.batch_size == 6

    def test_never_exceeds_max(self):
        controller = AdaptiveBatchController(19, max_size=20)
        for _ in range(20):
            controller.on_success()
        assert controller.batch_size == 20

    def test_shrinks_after_two_failures(self):
        controller = AdaptiveBatchController(10)
        controller.on_failure()
        assert controller.batch_size == 10

        controller.on_failure()
        assert controller.batch_size == 7

    def test_never_below_min(self):
        controller = AdaptiveBatchController(2, min_size=1)
        for _ in range(10):
            controller.on_failure()
        assert controller.batch_size == 1

    def test_failure_clears_success_streak(self):
        controller = AdaptiveBatchController(5)
        for _ in range(4):
            controller.on_success()
        controller.on_failure()
        controller.on_success()
        assert controller.batch_size == 5

    def test_reset(self):
        controller = AdaptiveBatchController(8)
        controller.on_failure()
        controller.on_failure()
        controller.reset()
        assert controller.batch_size == 8
