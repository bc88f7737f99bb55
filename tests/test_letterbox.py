import unittest

import numpy as np

from nsfw_kit.errors import EmptyOrDegenerateImage
from nsfw_kit.letterbox import letterbox
from nsfw_kit.postprocess import DetectionDecoder, to_pixels


class TestLetterbox(unittest.TestCase):
    def test_landscape_pads_bottom(self) -> None:
        img = np.full((480, 640, 3), 255, dtype=np.uint8)
        res = letterbox(img, 320)
        self.assertEqual(res.image.shape, (320, 320, 3))
        self.assertEqual(res.x_ratio, 1.0)
        self.assertAlmostEqual(res.y_ratio, 640 / 480)
        self.assertEqual(res.pad, (0, 160))
        # image occupies rows [0, 240), padding is black below it
        self.assertTrue(np.all(res.image[:238] == 255))
        self.assertTrue(np.all(res.image[242:] == 0))

    def test_portrait_pads_right(self) -> None:
        img = np.full((200, 100, 3), 255, dtype=np.uint8)
        res = letterbox(img, 320)
        self.assertEqual(res.pad, (100, 0))
        self.assertAlmostEqual(res.x_ratio, 2.0)
        self.assertEqual(res.y_ratio, 1.0)
        self.assertTrue(np.all(res.image[:, :158] == 255))
        self.assertTrue(np.all(res.image[:, 162:] == 0))

    def test_square_image_has_unit_ratios_and_no_padding(self) -> None:
        img = np.random.default_rng(0).integers(0, 256, size=(100, 100, 3), dtype=np.uint8)
        res = letterbox(img, 320)
        self.assertEqual(res.x_ratio, 1.0)
        self.assertEqual(res.y_ratio, 1.0)
        self.assertEqual(res.pad, (0, 0))
        self.assertEqual(res.image.shape, (320, 320, 3))

    def test_ratios_are_at_least_one(self) -> None:
        for h, w in [(1, 500), (500, 1), (333, 777), (64, 64)]:
            res = letterbox(np.zeros((h, w, 3), dtype=np.uint8), 64)
            self.assertGreaterEqual(res.x_ratio, 1.0)
            self.assertGreaterEqual(res.y_ratio, 1.0)

    def test_degenerate_image_rejected(self) -> None:
        with self.assertRaises(EmptyOrDegenerateImage):
            letterbox(np.zeros((0, 10, 3), dtype=np.uint8), 320)
        with self.assertRaises(EmptyOrDegenerateImage):
            letterbox(np.zeros((10, 0, 3), dtype=np.uint8), 320)

    def test_centered_box_maps_back_to_image_center(self) -> None:
        size = 320
        decoder = DetectionDecoder()
        for h, w in [(480, 640), (640, 480), (300, 300), (123, 457)]:
            res = letterbox(np.zeros((h, w, 3), dtype=np.uint8), size)
            scale = size / max(w, h)
            bw, bh = 20.0, 10.0
            cx, cy = w / 2 * scale, h / 2 * scale

            row = np.zeros((1, 1, 4 + 18), dtype=np.float64)
            row[0, 0, :4] = [cx, cy, bw, bh]
            row[0, 0, 5] = 0.9
            box = decoder.decode(row, res.x_ratio, res.y_ratio).boxes[0]

            px = to_pixels(box, (w, h), size)
            x, y, bw_px, bh_px = px.bounding
            self.assertAlmostEqual(x + bw_px / 2, w / 2, places=6)
            self.assertAlmostEqual(y + bh_px / 2, h / 2, places=6)


if __name__ == "__main__":
    unittest.main()
