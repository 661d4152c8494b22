from io import BytesIO

import numpy as np
import pytest
from PIL import Image


LIGHT = (230, 230, 230)
DARK = (30, 30, 30)


def make_image(width, height, color):
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:] = color
    return img


def paint_square(img, x, y, size, color):
    img[y : y + size, x : x + size] = color
    return img


def to_png(img):
    buf = BytesIO()
    Image.fromarray(img).save(buf, format="PNG")
    return buf.getvalue()


def decode_png(data):
    return np.asarray(Image.open(BytesIO(data)).convert("RGB"))


@pytest.fixture
def two_squares_image():
    """100x100 light canvas with a 20x20 square at (10,10) and a 30x30 square at (60,60)."""
    img = make_image(100, 100, LIGHT)
    paint_square(img, 10, 10, 20, DARK)
    paint_square(img, 60, 60, 30, DARK)
    return img


@pytest.fixture
def one_square_image():
    """100x100 light canvas with a single 50x50 square at (25,25)."""
    img = make_image(100, 100, LIGHT)
    paint_square(img, 25, 25, 50, DARK)
    return img


@pytest.fixture
def uniform_image():
    return make_image(100, 100, (120, 80, 40))
