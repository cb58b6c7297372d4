"""Tests for mask coverage and touch alert transitions"""

import numpy as np
import pytest

from conftest import RecordingAlertSink, ScriptedSegmenter, touching_mask
from touch_guard.errors import InferenceError
from touch_guard.state import TouchAlertState
from touch_guard.touch import ScanOrder, TouchDetector, apply_touch, coverage_threshold, scan_coverage


class TestScanCoverage:
    def test_reference_threshold(self):
        assert coverage_threshold((112, 112), 10) == 125_440

    def test_block_of_hand_pixels_reaches_threshold(self):
        mask = touching_mask()
        assert int(mask.sum()) == 637_500

        touched, _ = scan_coverage(mask, 125_440)
        assert touched

    def test_exact_threshold_counts_as_touch(self):
        mask = np.zeros((112, 112), dtype=np.uint8)
        mask.flat[:491] = 255
        mask.flat[491] = 205  # 491 * 255 + 205 == 125_410
        mask.flat[492] = 30
        assert int(mask.sum()) == 125_440

        assert scan_coverage(mask, 125_440) == (True, 125_440)

    def test_one_unit_below_threshold_is_no_touch(self):
        mask = np.zeros((112, 112), dtype=np.uint8)
        mask.flat[:491] = 255
        mask.flat[491] = 205
        mask.flat[492] = 29

        assert scan_coverage(mask, 125_440) == (False, 125_439)

    def test_bottom_up_scan_stops_early(self):
        mask = np.zeros((10, 10), dtype=np.uint8)
        mask[-1, :] = 255
        mask[0, :] = 255

        touched, coverage = scan_coverage(mask, 2000, ScanOrder.BOTTOM_UP)
        assert touched
        assert coverage == 2550

    def test_scan_order_does_not_change_decision(self):
        rng = np.random.default_rng(3)
        for _ in range(20):
            mask = (rng.random((16, 16)) < 0.1).astype(np.uint8) * 255
            threshold = float(rng.integers(0, 16 * 16 * 40))
            bottom_up, _ = scan_coverage(mask, threshold, ScanOrder.BOTTOM_UP)
            top_down, _ = scan_coverage(mask, threshold, ScanOrder.TOP_DOWN)
            assert bottom_up == top_down == (int(mask.sum()) >= threshold)

    def test_zero_threshold_always_touches(self):
        assert scan_coverage(np.zeros((4, 4), dtype=np.uint8), 0) == (True, 0)


class TestTouchDetector:
    def test_empty_mask_is_no_touch(self, frame):
        result = TouchDetector(ScriptedSegmenter(), coverage_per_pixel=10).evaluate(frame)
        assert not result.touched
        assert result.threshold == 125_440

    def test_touching_mask(self, frame):
        result = TouchDetector(ScriptedSegmenter([touching_mask()]), coverage_per_pixel=10).evaluate(frame)
        assert result.touched

    def test_single_channel_mask_is_accepted(self, frame):
        mask = touching_mask()[:, :, None]
        assert TouchDetector(ScriptedSegmenter([mask]), coverage_per_pixel=10).evaluate(frame).touched

    def test_malformed_mask_raises_inference_error(self, frame):
        segmenter = ScriptedSegmenter([np.zeros((112, 112, 3), dtype=np.uint8)])
        with pytest.raises(InferenceError):
            TouchDetector(segmenter, coverage_per_pixel=10).evaluate(frame)

    def test_segmentation_failure_propagates(self, frame):
        segmenter = ScriptedSegmenter([InferenceError("model unavailable")])
        with pytest.raises(InferenceError):
            TouchDetector(segmenter, coverage_per_pixel=10).evaluate(frame)

    def test_preview_receives_a_copy(self, frame):
        class Preview:
            masks = []

            def show_frame(self, frame):
                pass

            def show_mask(self, mask):
                mask[:] = 0
                self.masks.append(mask)

        preview = Preview()
        result = TouchDetector(ScriptedSegmenter([touching_mask()]), 10, preview=preview).evaluate(frame)

        assert len(preview.masks) == 1
        assert result.touched


class TestApplyTouch:
    def test_rising_edge_signals_once(self):
        state, sink = TouchAlertState(), RecordingAlertSink()

        assert apply_touch(state, True, now=1.0, cooloff_seconds=5.0, sink=sink)
        assert not apply_touch(state, True, now=1.2, cooloff_seconds=5.0, sink=sink)

        assert sink.touch_events() == [True]
        assert state.active
        assert state.suppress_until == pytest.approx(6.2)

    def test_no_touch_clears_and_silences(self):
        state, sink = TouchAlertState(), RecordingAlertSink()
        apply_touch(state, True, now=1.0, cooloff_seconds=5.0, sink=sink)
        apply_touch(state, False, now=1.5, cooloff_seconds=5.0, sink=sink)
        apply_touch(state, False, now=1.7, cooloff_seconds=5.0, sink=sink)

        assert not state.active
        assert sink.touch_events() == [True, False, False]

    def test_new_touch_after_cooloff_signals_again(self):
        state, sink = TouchAlertState(), RecordingAlertSink()
        apply_touch(state, True, now=1.0, cooloff_seconds=5.0, sink=sink)
        apply_touch(state, False, now=2.0, cooloff_seconds=5.0, sink=sink)
        assert apply_touch(state, True, now=6.0, cooloff_seconds=5.0, sink=sink)

        assert sink.touch_events() == [True, False, True]

    def test_new_touch_inside_cooloff_is_not_signalled(self):
        state, sink = TouchAlertState(), RecordingAlertSink()
        apply_touch(state, True, now=1.0, cooloff_seconds=5.0, sink=sink)
        apply_touch(state, False, now=1.2, cooloff_seconds=5.0, sink=sink)

        assert not apply_touch(state, True, now=1.4, cooloff_seconds=5.0, sink=sink)
        assert sink.touch_events() == [True, False]
        assert state.active
        assert state.suppress_until == pytest.approx(6.4)

    def test_zero_cooloff_signals_every_rising_edge(self):
        state, sink = TouchAlertState(), RecordingAlertSink()
        for touched in (True, False, True):
            apply_touch(state, touched, now=1.0, cooloff_seconds=0.0, sink=sink)
        assert sink.touch_events() == [True, False, True]
