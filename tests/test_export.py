"""Unit tests for image and signal grid export.

Tests cover:
- Output file naming
- Little-endian float files
- Signal color mapping
- Signal map orientation and obstruction overlay
- PNG writing
"""

import numpy as np
import pytest
from PIL import Image

from radiotrace.output.export import (
    OBSTRUCTION_COLOR,
    format_frequency,
    output_path,
    read_floats,
    save_png_from_array,
    signal_image,
    signal_to_color,
    write_floats,
)


class _Obstruction:
    def __init__(self, center, size):
        self.center = center
        self.size = size


class TestNaming:
    """Tests for per-station file names."""

    def test_integral_frequency(self):
        assert format_frequency(2400.0) == "2400"
        assert output_path("out/city", 7, 2400.0, "data") == "out/city_7_2400.data"

    def test_fractional_frequency(self):
        assert format_frequency(868.5) == "868.5"
        assert output_path("scan", 3, 868.5, "png") == "scan_3_868.5.png"

    def test_integer_input(self):
        assert format_frequency(900) == "900"


class TestFloatFiles:
    """Tests for write_floats/read_floats."""

    def test_little_endian_layout(self, tmp_path):
        path = tmp_path / "grid.data"
        write_floats(path, np.array([1.0, -140.0], dtype=np.float32))

        raw = path.read_bytes()
        assert len(raw) == 8
        assert raw[:4] == b"\x00\x00\x80\x3f"
        assert np.frombuffer(raw, dtype="<f4").tolist() == [1.0, -140.0]

    def test_multidimensional_input_is_flattened(self, tmp_path):
        path = tmp_path / "grid.data"
        write_floats(path, np.arange(6, dtype=np.float64).reshape(2, 3))

        values = read_floats(path)
        assert values.dtype == np.float32
        assert values.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


class TestSignalColor:
    """Tests for signal_to_color."""

    @pytest.mark.parametrize(
        "signal, expected",
        [
            (-140.0, (0, 0, 0)),
            (-100.0, (0, 0, 0)),
            (-200.0 / 3.0, (0, 0, 255)),
            (-100.0 / 3.0, (0, 255, 255)),
            (0.0, (255, 255, 255)),
            (20.0, (255, 255, 255)),
        ],
    )
    def test_breakpoints(self, signal, expected):
        assert tuple(signal_to_color(signal).tolist()) == expected

    def test_shape(self):
        colors = signal_to_color(np.zeros((4, 5), dtype=np.float32))
        assert colors.shape == (4, 5, 3)
        assert colors.dtype == np.uint8


class TestSignalImage:
    """Tests for signal_image."""

    def test_shape_and_orientation(self):
        """Test +z is up: grid row 0 becomes the bottom image row."""
        width, height = 3, 2
        grid = np.full((height + 1) * (width + 1), -140.0, dtype=np.float32)
        grid[0] = 0.0  # cell (0, 0)

        image = signal_image(grid, width, height)
        assert image.shape == (2, 3, 3)
        assert image[-1, 0].tolist() == [255, 255, 255]
        assert image[0, 0].tolist() == [0, 0, 0]

    def test_extra_row_and_column_dropped(self):
        width, height = 2, 2
        grid = np.full((height + 1) * (width + 1), -140.0, dtype=np.float32)
        grid[2] = 0.0  # column 2 of row 0
        grid[6:9] = 0.0  # row 2

        image = signal_image(grid, width, height)
        assert (image == 0).all()

    def test_elevated_obstruction_drawn(self):
        width, height = 10, 10
        grid = np.full((height + 1) * (width + 1), -140.0, dtype=np.float32)
        box = _Obstruction((5.0, 3.0, 2.0), (2.0, 3.0, 1.0))

        image = signal_image(grid, width, height, [box])
        red = np.all(image == OBSTRUCTION_COLOR, axis=-1)
        # x in [3, 7), z in [1, 3); z rows are flipped
        expected = np.zeros((height, width), dtype=bool)
        expected[1:3, 3:7] = True
        np.testing.assert_array_equal(red, np.flipud(expected))

    def test_sphere_footprint_uses_radius(self):
        width, height = 10, 10
        grid = np.full((height + 1) * (width + 1), -140.0, dtype=np.float32)
        sphere = _Obstruction((1.0, 4.0, 8.0), 2.0)

        image = signal_image(grid, width, height, [sphere])
        red = np.flipud(np.all(image == OBSTRUCTION_COLOR, axis=-1))
        # Clipped at x = 0, z stops at the grid edge
        assert red[6:10, 0:3].all()
        assert red.sum() == 12

    def test_ground_level_obstruction_not_drawn(self):
        width, height = 4, 4
        grid = np.full((height + 1) * (width + 1), -140.0, dtype=np.float32)
        ground = _Obstruction((2.0, -1.0, 2.0), (20.0, 1.0, 20.0))

        image = signal_image(grid, width, height, [ground])
        assert (image == 0).all()


class TestSavePng:
    """Tests for save_png_from_array."""

    def test_roundtrip(self, tmp_path):
        image = np.zeros((2, 3, 3), dtype=np.uint8)
        image[0, 1] = (10, 20, 30)
        path = tmp_path / "out.png"
        save_png_from_array(image, path)

        with Image.open(path) as img:
            assert img.size == (3, 2)
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.asarray(img), image)

    def test_rejects_float_image(self, tmp_path):
        with pytest.raises(ValueError):
            save_png_from_array(np.zeros((2, 2, 3), dtype=np.float32), tmp_path / "x.png")
