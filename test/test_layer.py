import unittest
from unittest import mock

import numpy as np
from PIL import Image

from rasterstack.core.color import argb
from rasterstack.core.layer import Layer, create_layer, release_layer, retain_layer
from rasterstack.errors import AllocationFailure, LayerReleasedError


class TestLayerCreation(unittest.TestCase):
    def test_new_layer_is_transparent_black(self):
        layer = create_layer(7, 5)
        self.assertEqual(layer.pixels.shape, (5, 7))
        self.assertEqual(layer.pixels.dtype, np.uint32)
        self.assertTrue(np.all(layer.pixels == 0))
        self.assertEqual(layer.refcount, 1)

    def test_invalid_dimensions(self):
        with self.assertRaises(ValueError):
            Layer(0, 4)
        with self.assertRaises(ValueError):
            Layer(4, -1)
        with self.assertRaises(TypeError):
            Layer(2.5, 4)

    def test_allocation_failure(self):
        with mock.patch("rasterstack.core.layer.np.zeros", side_effect=MemoryError):
            with self.assertRaises(AllocationFailure):
                Layer(4, 4)

    def test_size_beyond_address_space(self):
        with self.assertRaises(AllocationFailure) as ctx:
            Layer(4_000_000_000, 4_000_000_000)
        self.assertIsInstance(ctx.exception, MemoryError)


class TestLayerRefcount(unittest.TestCase):
    def test_retain_release_are_inverse(self):
        layer = Layer(2, 2)
        n = 5
        for _ in range(n):
            retain_layer(layer)
        self.assertEqual(layer.refcount, n + 1)
        for i in range(n):
            release_layer(layer)
            self.assertFalse(layer.released, f"freed early on release {i + 1}")
        self.assertEqual(layer.refcount, 1)
        release_layer(layer)
        self.assertTrue(layer.released)
        self.assertEqual(layer.refcount, 0)

    def test_absent_layer_is_noop(self):
        retain_layer(None)
        release_layer(None)

    def test_use_after_release_raises(self):
        layer = Layer(2, 2)
        layer.release()
        with self.assertRaises(LayerReleasedError):
            layer.pixels
        with self.assertRaises(LayerReleasedError):
            layer.set_pixel(0, 0, 1)
        with self.assertRaises(LayerReleasedError):
            layer.release()
        with self.assertRaises(LayerReleasedError):
            layer.retain()

    def test_context_manager_releases_creator_reference(self):
        with Layer(3, 3) as layer:
            layer.retain()
        self.assertEqual(layer.refcount, 1)
        self.assertFalse(layer.released)

        with Layer(3, 3) as temp:
            pass
        self.assertTrue(temp.released)


class TestLayerPixels(unittest.TestCase):
    def test_set_pixel_in_bounds(self):
        layer = Layer(4, 3)
        color = argb(255, 10, 20, 30)
        layer.set_pixel(3, 2, color)
        self.assertEqual(layer.get_pixel(3, 2), color)
        self.assertEqual(int(layer.pixels.flat[2 * 4 + 3]), color)

    def test_set_pixel_out_of_bounds_is_ignored(self):
        layer = Layer(4, 3)
        for x, y in [(-1, 0), (0, -1), (4, 0), (0, 3), (100, 100)]:
            layer.set_pixel(x, y, 0xFFFFFFFF)
        self.assertTrue(np.all(layer.pixels == 0))

    def test_get_pixel_out_of_bounds_raises(self):
        layer = Layer(4, 3)
        with self.assertRaises(IndexError):
            layer.get_pixel(4, 0)

    def test_fill(self):
        layer = Layer(3, 2)
        layer.fill(argb(128, 0, 0, 255))
        self.assertTrue(np.all(layer.pixels == argb(128, 0, 0, 255)))

    def test_pil_roundtrip(self):
        array = np.zeros((2, 3, 4), dtype=np.uint8)
        array[0, 0] = [255, 0, 0, 255]
        array[1, 2] = [1, 2, 3, 128]
        layer = Layer.from_pil(Image.fromarray(array))
        self.assertEqual(layer.size, (3, 2))
        self.assertEqual(layer.get_pixel(0, 0), argb(255, 255, 0, 0))
        self.assertEqual(layer.get_pixel(2, 1), argb(128, 1, 2, 3))
        np.testing.assert_array_equal(np.array(layer.to_pil()), array)


if __name__ == "__main__":
    unittest.main()
