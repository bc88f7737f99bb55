import unittest

import numpy as np

from nsfw_kit.labels import LABELS
from nsfw_kit.postprocess import DecoderConfig, DetectionDecoder, to_pixels
from nsfw_kit.types import Box

NUM_CLASSES = len(LABELS)
BREAST_EXPOSED = LABELS.index("FEMALE_BREAST_EXPOSED")
FACE_FEMALE = LABELS.index("FACE_FEMALE")


def make_selected(rows, dtype=np.float32) -> np.ndarray:
    """rows: list of (box, {class_id: score})"""

    out = np.zeros((1, len(rows), 4 + NUM_CLASSES), dtype=dtype)
    for i, (box, scores) in enumerate(rows):
        out[0, i, :4] = box
        for cls, score in scores.items():
            out[0, i, 4 + cls] = score
    return out


class TestDetectionDecoder(unittest.TestCase):
    def setUp(self) -> None:
        self.decoder = DetectionDecoder()

    def test_empty_selection(self) -> None:
        result = self.decoder.decode(np.zeros((1, 0, 4 + NUM_CLASSES), dtype=np.float32))
        self.assertEqual(result.boxes, [])
        self.assertFalse(result.is_nsfw)

    def test_rescale_center_to_top_left(self) -> None:
        selected = make_selected([([160, 160, 40, 40], {BREAST_EXPOSED: 0.9})])
        result = self.decoder.decode(selected, 1.0, 640 / 480)
        box = result.boxes[0]
        self.assertEqual(box.label, BREAST_EXPOSED)
        self.assertAlmostEqual(box.probability, 0.9, places=6)
        x, y, w, h = box.bounding
        self.assertAlmostEqual(x, 140.0)
        self.assertAlmostEqual(y, 140.0 * 640 / 480)
        self.assertAlmostEqual(w, 40.0)
        self.assertAlmostEqual(h, 40.0 * 640 / 480)
        self.assertTrue(result.is_nsfw)

    def test_tie_break_prefers_lowest_index(self) -> None:
        selected = make_selected([([10, 10, 4, 4], {5: 0.7, 3: 0.7, 9: 0.2})])
        result = self.decoder.decode(selected)
        self.assertEqual(result.boxes[0].label, 3)

    def test_threshold_is_strict(self) -> None:
        at = make_selected([([10, 10, 4, 4], {BREAST_EXPOSED: 0.6})])
        above = make_selected([([10, 10, 4, 4], {BREAST_EXPOSED: 0.61})])
        self.assertFalse(self.decoder.decode(at).is_nsfw)
        self.assertTrue(self.decoder.decode(above).is_nsfw)

    def test_threshold_is_strict_in_double_precision(self) -> None:
        at = make_selected([([10, 10, 4, 4], {BREAST_EXPOSED: 0.6})], dtype=np.float64)
        self.assertFalse(self.decoder.decode(at).is_nsfw)

    def test_adding_flagged_box_flips_verdict(self) -> None:
        clean = [([10, 10, 4, 4], {FACE_FEMALE: 0.95})]
        self.assertFalse(self.decoder.decode(make_selected(clean)).is_nsfw)
        flagged = clean + [([50, 50, 8, 8], {BREAST_EXPOSED: 0.61})]
        self.assertTrue(self.decoder.decode(make_selected(flagged)).is_nsfw)

    def test_unflagged_label_never_sets_verdict(self) -> None:
        selected = make_selected([([160, 160, 40, 40], {FACE_FEMALE: 0.95})])
        result = self.decoder.decode(selected, 1.0, 640 / 480)
        self.assertEqual(len(result.boxes), 1)
        self.assertFalse(result.is_nsfw)

    def test_all_rows_decoded_in_order(self) -> None:
        selected = make_selected(
            [
                ([10, 10, 4, 4], {BREAST_EXPOSED: 0.9}),
                ([20, 20, 4, 4], {FACE_FEMALE: 0.8}),
                ([30, 30, 4, 4], {0: 0.3}),
            ]
        )
        result = self.decoder.decode(selected)
        self.assertTrue(result.is_nsfw)
        self.assertEqual([b.label for b in result.boxes], [BREAST_EXPOSED, FACE_FEMALE, 0])

    def test_zero_padding_rows_skipped(self) -> None:
        selected = make_selected([([10, 10, 4, 4], {FACE_FEMALE: 0.8}), ([0, 0, 0, 0], {})])
        self.assertEqual(len(self.decoder.decode(selected).boxes), 1)

    def test_rows_capped_at_topk_times_classes(self) -> None:
        decoder = DetectionDecoder(DecoderConfig(topk=1))
        rows = [([i + 1, i + 1, 2, 2], {FACE_FEMALE: 0.5}) for i in range(NUM_CLASSES + 3)]
        with self.assertLogs("nsfw_kit.postprocess", level="WARNING"):
            result = decoder.decode(make_selected(rows))
        self.assertEqual(len(result.boxes), NUM_CLASSES)

    def test_label_outside_table_is_not_flagged(self) -> None:
        decoder = DetectionDecoder(DecoderConfig(labels=("FEMALE_BREAST_EXPOSED",)))
        selected = make_selected([([10, 10, 4, 4], {1: 0.99})])
        result = decoder.decode(selected)
        self.assertEqual(result.boxes[0].label, 1)
        self.assertFalse(result.is_nsfw)

    def test_custom_flagged_set(self) -> None:
        decoder = DetectionDecoder(DecoderConfig(flagged_labels=frozenset({"FACE_FEMALE"})))
        selected = make_selected([([10, 10, 4, 4], {FACE_FEMALE: 0.7})])
        self.assertTrue(decoder.decode(selected).is_nsfw)

    def test_batch_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.decoder.decode(np.zeros((2, 1, 4 + NUM_CLASSES), dtype=np.float32))


class TestToPixels(unittest.TestCase):
    def test_scales_each_axis(self) -> None:
        box = Box(label=1, probability=0.5, bounding=(160.0, 80.0, 32.0, 16.0))
        out = to_pixels(box, (640, 480), 320)
        self.assertEqual(out.bounding, (320.0, 120.0, 64.0, 24.0))
        self.assertEqual(out.label, 1)
        self.assertEqual(box.bounding, (160.0, 80.0, 32.0, 16.0))

    def test_as_xyxy(self) -> None:
        box = Box(label=0, probability=0.1, bounding=(1.0, 2.0, 3.0, 4.0))
        self.assertEqual(box.as_xyxy(), (1.0, 2.0, 4.0, 6.0))


if __name__ == "__main__":
    unittest.main()
