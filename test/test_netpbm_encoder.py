import io
import os
import tempfile
import unittest

import numpy as np

from rasterstack.core.color import argb
from rasterstack.core.image import LayeredImage
from rasterstack.core.layer import Layer
from rasterstack.errors import IoFailure, UnsupportedFormat
from rasterstack.netpbm import FileType, decode, encode_image, format_header, save_image, write_image

WHITE = argb(255, 255, 255, 255)


def _gray(r, g, b):
    return int(0.299 * r + 0.587 * g + 0.114 * b)


class ShortWriteStream(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        return max(len(data) - 1, 0)


class FailingStream(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise OSError("disk full")


class TestHeaders(unittest.TestCase):
    def test_format_header(self):
        self.assertEqual(format_header(FileType.PPM, 3, 2), b"P6\n3 2\n255\n")
        self.assertEqual(format_header(FileType.PGM, 3, 2), b"P5\n3 2\n255\n")
        self.assertEqual(format_header(FileType.PBM, 3, 2), b"P4\n3 2\n")

    def test_magic_numbers(self):
        self.assertEqual([t.magic for t in (FileType.PBM, FileType.PGM, FileType.PPM)], [b"P4", b"P5", b"P6"])
        with self.assertRaises(ValueError):
            FileType.UNKNOWN.magic


class TestEncode(unittest.TestCase):
    def setUp(self):
        self.image = LayeredImage(3, 2)
        layer = self.image.add_layer()
        self.colors = [
            [argb(255, 255, 0, 0), argb(255, 0, 255, 0), argb(255, 0, 0, 255)],
            [argb(255, 10, 20, 30), argb(0, 99, 99, 99), argb(200, 255, 255, 255)],
        ]
        layer.pixels[...] = np.array(self.colors, dtype=np.uint32)

    def tearDown(self):
        self.image.destroy()

    def test_ppm(self):
        data = encode_image(self.image, FileType.PPM)
        header = b"P6\n3 2\n255\n"
        self.assertTrue(data.startswith(header))
        body = bytes([255, 0, 0, 0, 255, 0, 0, 0, 255, 10, 20, 30, 0, 0, 0, 200, 200, 200])
        self.assertEqual(data[len(header):], body)

    def test_pgm(self):
        data = encode_image(self.image, FileType.PGM)
        header = b"P5\n3 2\n255\n"
        expected = [_gray(255, 0, 0), _gray(0, 255, 0), _gray(0, 0, 255), _gray(10, 20, 30), 0, _gray(200, 200, 200)]
        self.assertEqual(data, header + bytes(expected))

    def test_pbm(self):
        data = encode_image(self.image, FileType.PBM)
        # red 76 and blue 29 are dark, green 149 is light; row 1: dark, black, 200 is light
        self.assertEqual(data, b"P4\n3 2\n" + bytes([0b10100000, 0b11000000]))

    def test_pbm_row_padding(self):
        with LayeredImage(9, 1) as image:
            layer = image.add_layer()
            layer.fill(WHITE)
            layer.set_pixel(8, 0, argb(255, 0, 0, 0))
            data = encode_image(image, FileType.PBM)
        self.assertEqual(data, b"P4\n9 1\n" + bytes([0x00, 0x80]))

    def test_ppm_roundtrip(self):
        rng = np.random.default_rng(3)
        with LayeredImage(7, 5) as image:
            for _ in range(2):
                layer = image.add_layer()
                rgb = rng.integers(0, 2**24, size=(5, 7), dtype=np.uint32)
                layer.pixels[...] = rgb | np.uint32(0xFF000000)
            data = encode_image(image, FileType.PPM)
            layer, file_type = decode(io.BytesIO(data))
            self.assertEqual(file_type, FileType.PPM)
            np.testing.assert_array_equal(layer.pixels, image.flatten())

    def test_unknown_type(self):
        with self.assertRaises(UnsupportedFormat):
            encode_image(self.image, FileType.UNKNOWN)

    def test_short_write(self):
        with self.assertRaises(IoFailure):
            write_image(self.image, ShortWriteStream(), FileType.PPM)

    def test_write_error(self):
        with self.assertRaises(IoFailure):
            write_image(self.image, FailingStream(), FileType.PGM)

    def test_missing_image(self):
        with self.assertRaises(ValueError):
            encode_image(None, FileType.PPM)


class TestSaveImage(unittest.TestCase):
    def test_save_infers_type_from_suffix(self):
        with tempfile.TemporaryDirectory() as tmp, LayeredImage(2, 2) as image:
            image.add_layer().fill(argb(255, 1, 2, 3))
            path = os.path.join(tmp, "out.ppm")
            save_image(image, path)
            with open(path, "rb") as f:
                self.assertEqual(f.read(), b"P6\n2 2\n255\n" + bytes([1, 2, 3]) * 4)

    def test_save_explicit_type(self):
        with tempfile.TemporaryDirectory() as tmp, LayeredImage(2, 1) as image:
            path = os.path.join(tmp, "out.bin")
            save_image(image, path, FileType.PBM)
            with open(path, "rb") as f:
                self.assertEqual(f.read(), b"P4\n2 1\n" + bytes([0b11000000]))

    def test_unwritable_path(self):
        with tempfile.TemporaryDirectory() as tmp, LayeredImage(2, 1) as image:
            with self.assertRaises(IoFailure):
                save_image(image, os.path.join(tmp, "no", "such", "dir.ppm"))


if __name__ == "__main__":
    unittest.main()
