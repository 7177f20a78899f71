"""Shared pytest fixtures for Print Board tests."""
import os

os.environ['QT_QPA_PLATFORM'] = 'offscreen'  # must be set before QApplication import

import io
import pytest
from PIL import Image, ImageDraw


@pytest.fixture(scope='session')
def qapp():
    """Create a single QApplication for all tests."""
    from controller import PrintBoardApp
    app = PrintBoardApp.instance() or PrintBoardApp([])
    yield app


@pytest.fixture
def make_png():
    """Factory fixture: make_png(width, height, color) -> PNG bytes."""
    def _make(width, height, color='red'):
        img = Image.new('RGB', (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format='PNG')
        return buf.getvalue()
    return _make


@pytest.fixture
def photo_files(tmp_path, make_png):
    """Write simple photos of varied sizes to disk and return their paths."""
    specs = [
        ('landscape.png', 400, 300, 'red'),
        ('portrait.png', 300, 450, 'blue'),
        ('square.png', 250, 250, 'green'),
    ]
    paths = []
    for name, w, h, color in specs:
        path = tmp_path / name
        path.write_bytes(make_png(w, h, color))
        paths.append(str(path))
    return paths


@pytest.fixture
def circle_photo(tmp_path):
    """A single circle-on-white photo on disk."""
    img = Image.new('RGB', (200, 150), 'white')
    draw = ImageDraw.Draw(img)
    draw.ellipse([20, 20, 130, 130], fill='red', outline='black')
    path = tmp_path / 'circle.jpg'
    img.save(path, format='JPEG')
    return str(path)
