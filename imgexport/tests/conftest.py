"""
Pytest fixtures for imgexport tests.
"""

import io
import logging
import os

import pytest
from PIL import Image


def write_image(path, width=100, height=None, color='red', fmt=None, mode='RGB'):
    """Write a solid-color test image and return its path."""
    height = height or max(1, width // 2)
    os.makedirs(os.path.dirname(str(path)), exist_ok=True)
    img = Image.new(mode, (width, height), color=color)
    if fmt is None:
        ext = os.path.splitext(str(path))[1].lower()
        fmt = {'.jpg': 'JPEG', '.jpeg': 'JPEG', '.png': 'PNG', '.gif': 'GIF', '.webp': 'WEBP'}[ext]
    img.save(str(path), format=fmt)
    return str(path)


@pytest.fixture
def make_image():
    """Fixture providing the write_image helper."""
    return write_image


@pytest.fixture
def project_dir(tmp_path):
    """Fixture providing an empty project with a public/images folder."""
    (tmp_path / 'public' / 'images').mkdir(parents=True)
    return tmp_path


@pytest.fixture
def config(project_dir):
    """Fixture providing a resolved single-worker config for the temp project."""
    from imgexport.config import OptimizerConfig

    return OptimizerConfig(
        project_dir=str(project_dir),
        image_sizes=[16],
        device_sizes=[64, 128],
        workers=1,
    ).resolve_paths()


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    img = Image.new('RGB', (100, 100), color='red')
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    img = Image.new('RGBA', (100, 100), color=(255, 0, 0, 128))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def sample_source(config, make_image):
    """Fixture providing a local SourceImage backed by a 200px JPEG."""
    from imgexport.image_record import SourceImage

    make_image(os.path.join(config.image_folder_path, 'a.jpg'), width=200)
    return SourceImage(
        base_path=config.image_folder_path,
        subdirectory='',
        filename='a.jpg',
    )


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    return logging.getLogger('test')
