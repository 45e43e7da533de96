"""
Tests for ImageCodec.
"""

import io
import os

import pytest
from PIL import Image, UnidentifiedImageError

from imgexport.codec import ImageCodec, output_token


def orientation_exif(value):
    exif = Image.Exif()
    exif[0x0112] = value
    return exif


class TestOutputToken:
    """Tests for output_token."""

    def test_webp_conversion(self):
        """Test png, jpeg and gif become webp when webp output is enabled."""
        for name in ['a.png', 'a.jpg', 'a.JPEG', 'a.gif']:
            assert output_token(name, True) == 'WEBP'

    def test_keep_source_format(self):
        """Test the source extension is kept when webp output is disabled."""
        assert output_token('a.png', False) == 'PNG'
        assert output_token('a.jpeg', False) == 'JPEG'

    def test_avif_kept(self):
        """Test avif keeps its own token regardless of the webp setting."""
        assert output_token('a.avif', True) == 'AVIF'
        assert output_token('a.avif', False) == 'AVIF'


class TestEncodingFor:
    """Tests for encoding_for()."""

    def test_avif_quality_offset(self):
        """Test avif is encoded 15 below the global quality."""
        codec = ImageCodec(quality=75)
        codec._avif = True

        assert codec.encoding_for('AVIF') == ('AVIF', 60)

    def test_avif_quality_floor(self):
        """Test the avif offset never goes below zero."""
        codec = ImageCodec(quality=10)
        codec._avif = True

        assert codec.encoding_for('AVIF') == ('AVIF', 0)

    def test_avif_override(self):
        """Test an explicit avif quality is used as-is."""
        codec = ImageCodec(quality=75, quality_overrides={'AVIF': 70})
        codec._avif = True

        assert codec.encoding_for('AVIF') == ('AVIF', 70)

    def test_avif_fallback_to_webp(self):
        """Test avif is encoded as webp when Pillow cannot write avif."""
        codec = ImageCodec(quality=75)
        codec._avif = False

        assert codec.encoding_for('AVIF') == ('WEBP', 75)

    def test_jpeg_override(self):
        """Test per-format overrides apply to jpeg."""
        codec = ImageCodec(quality=75, quality_overrides={'jpeg': 90})

        assert codec.encoding_for('JPG') == ('JPEG', 90)
        assert codec.encoding_for('WEBP') == ('WEBP', 75)

    def test_lossless_formats_have_no_quality(self):
        """Test png and gif take no quality."""
        codec = ImageCodec()

        assert codec.encoding_for('PNG') == ('PNG', None)
        assert codec.encoding_for('GIF') == ('GIF', None)

    def test_unknown_token(self):
        """Test unknown tokens raise ValueError."""
        with pytest.raises(ValueError):
            ImageCodec().encoding_for('TIFF')


class TestRender:
    """Tests for open() and render()."""

    def test_resize_smaller(self, tmp_path, sample_image_bytes):
        """Test a width below the native width downscales."""
        codec = ImageCodec()
        img = codec.open(sample_image_bytes)
        destination = str(tmp_path / 'out' / 'a-opt-50.WEBP')

        size, resized = codec.render(img, 50, 'WEBP', destination)

        assert resized is True
        assert size == os.path.getsize(destination)
        with Image.open(destination) as out:
            assert out.format == 'WEBP'
            assert out.size == (50, 50)

    def test_never_upscales(self, tmp_path, sample_image_bytes):
        """Test a width above the native width keeps the native size."""
        codec = ImageCodec()
        img = codec.open(sample_image_bytes)
        destination = str(tmp_path / 'a-opt-640.WEBP')

        _, resized = codec.render(img, 640, 'WEBP', destination)

        assert resized is False
        with Image.open(destination) as out:
            assert out.size == (100, 100)

    def test_equal_width_is_native(self, tmp_path, sample_image_bytes):
        """Test a width equal to the native width is not a resize."""
        codec = ImageCodec()
        img = codec.open(sample_image_bytes)

        _, resized = codec.render(img, 100, 'JPEG', str(tmp_path / 'a.JPEG'))

        assert resized is False

    def test_rgba_to_jpeg(self, tmp_path, sample_png_bytes):
        """Test transparent images are flattened for jpeg output."""
        codec = ImageCodec()
        img = codec.open(sample_png_bytes)
        destination = str(tmp_path / 'a-opt-50.JPG')

        codec.render(img, 50, 'JPG', destination)

        with Image.open(destination) as out:
            assert out.mode == 'RGB'

    def test_rgba_to_webp_keeps_alpha(self, tmp_path, sample_png_bytes):
        """Test webp output keeps transparency."""
        codec = ImageCodec()
        img = codec.open(sample_png_bytes)
        destination = str(tmp_path / 'a-opt-50.WEBP')

        codec.render(img, 50, 'WEBP', destination)

        with Image.open(destination) as out:
            assert out.mode == 'RGBA'

    def test_keeps_aspect_ratio(self, tmp_path, make_image):
        """Test resizing keeps the aspect ratio."""
        path = make_image(tmp_path / 'wide.png', width=400, height=100)
        codec = ImageCodec()
        with open(path, 'rb') as f:
            img = codec.open(f.read())

        codec.render(img, 200, 'PNG', str(tmp_path / 'wide-opt-200.PNG'))

        with Image.open(str(tmp_path / 'wide-opt-200.PNG')) as out:
            assert out.size == (200, 50)

    def test_animated_gif_keeps_frames(self, tmp_path):
        """Test animated gifs keep every frame when resized."""
        frames = [Image.new('RGB', (80, 40), color=c) for c in ('red', 'green', 'blue')]
        source = str(tmp_path / 'anim.gif')
        frames[0].save(source, save_all=True, append_images=frames[1:], duration=100, loop=0)
        codec = ImageCodec()
        with open(source, 'rb') as f:
            img = codec.open(f.read())
        destination = str(tmp_path / 'anim-opt-40.GIF')

        codec.render(img, 40, 'GIF', destination)

        with Image.open(destination) as out:
            assert out.n_frames == 3
            assert out.size == (40, 20)

    def test_mpo_rotated_as_single_image(self, tmp_path):
        """Test a rotated camera MPO is rotated upright and written as one frame."""
        primary = Image.new('RGB', (400, 100), color='red')
        preview = Image.new('RGB', (40, 10), color='blue')
        buffer = io.BytesIO()
        primary.save(buffer, format='MPO', save_all=True, append_images=[preview],
                     exif=orientation_exif(6))
        codec = ImageCodec()

        img = codec.open(buffer.getvalue())
        codec.render(img, 50, 'JPG', str(tmp_path / 'a-opt-50.JPG'))
        codec.render(img, 50, 'WEBP', str(tmp_path / 'a-opt-50.WEBP'))

        assert img.size == (100, 400)
        with Image.open(str(tmp_path / 'a-opt-50.JPG')) as out:
            assert out.size == (50, 200)
        with Image.open(str(tmp_path / 'a-opt-50.WEBP')) as out:
            assert getattr(out, 'n_frames', 1) == 1

    def test_animated_orientation_applied(self, tmp_path):
        """Test every frame of a rotated animation is turned upright."""
        frames = [Image.new('RGB', (80, 40), color=c) for c in ('red', 'green')]
        source = str(tmp_path / 'anim.webp')
        frames[0].save(source, format='WEBP', save_all=True, append_images=frames[1:],
                       duration=100, loop=0, exif=orientation_exif(6))
        codec = ImageCodec()
        with open(source, 'rb') as f:
            img = codec.open(f.read())
        destination = str(tmp_path / 'anim-opt-20.WEBP')

        _, resized = codec.render(img, 20, 'WEBP', destination)

        assert resized is True
        with Image.open(destination) as out:
            assert out.n_frames == 2
            assert out.size == (20, 40)

    def test_header_width(self, tmp_path):
        """Test the header width accounts for orientation."""
        buffer = io.BytesIO()
        Image.new('RGB', (300, 100)).save(buffer, format='JPEG', exif=orientation_exif(8))

        assert ImageCodec().header_width(buffer.getvalue()) == 100

    def test_invalid_image(self):
        """Test undecodable bytes raise."""
        with pytest.raises(UnidentifiedImageError):
            ImageCodec().open(b'not an image')
