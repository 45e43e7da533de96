"""Tests for GenerationStats."""

from imgexport.generation_stats import GenerationStats
from imgexport.image_record import DerivativeAction, DerivativeInfo, SourceImage
from imgexport.planner import ImageResult


def result_with(*actions, skipped=(), error=None):
    derivatives = [
        DerivativeInfo(width=16 * (i + 1), path=f'p{i}', size=100, action=action)
        for i, action in enumerate(actions)
    ]
    return ImageResult(
        image=SourceImage('base', '', 'a.jpg'),
        fingerprint='x',
        derivatives=derivatives,
        skipped_widths=list(skipped),
        error=error,
    )


class TestGenerationStats:
    """Tests for GenerationStats."""

    def test_add_result(self):
        """Test derivative actions are counted separately."""
        stats = GenerationStats(total_images=2)

        stats.add_result(result_with(
            DerivativeAction.GENERATED, DerivativeAction.GENERATED, DerivativeAction.COPIED,
            skipped=[2048],
        ))
        stats.add_result(result_with(DerivativeAction.REUSED))

        assert stats.generated == 2
        assert stats.copied == 1
        assert stats.reused == 1
        assert stats.skipped == 1
        assert stats.bytes_total == 400
        assert stats.derivatives_total == 4
        assert stats.remaining_count == 0

    def test_error_recorded(self):
        """Test failed images are counted with their message."""
        stats = GenerationStats(total_images=1)

        stats.add_result(result_with(error='OSError: broken'))

        assert stats.errors == 1
        assert stats.images_processed == 0
        assert 'OSError: broken' in stats.error_details[0]

    def test_remaining(self):
        """Test remaining count before all images finish."""
        stats = GenerationStats(total_images=3)
        stats.add_result(result_with(DerivativeAction.GENERATED))

        assert stats.completed_count == 1
        assert stats.remaining_count == 2

    def test_rate_per_second(self):
        """Test rate is completed images over elapsed time."""
        stats = GenerationStats(total_images=10, start_time=0)
        stats.images_processed = 5

        assert stats.rate_per_second > 0
        assert stats.estimated_remaining_seconds > 0
