"""Tests for logo optimization and upload handling."""

import base64
import io

import pytest
import requests
from PIL import Image

from invoice_composer.imaging import (
    ImageFormat,
    ImageOptimizer,
    LogoUploader,
    OptimizationOptions,
    UploadedFile,
    calculate_dimensions,
)
from invoice_composer.rendering import Rasterizer, RenderNode
from invoice_composer.utils.exceptions import LoadError, ValidationError
from invoice_composer.utils.helpers import decode_data_uri, encode_data_uri


def open_data_uri(uri):
    """Decode a data URI into (mime type, PIL image)."""
    mime_type, payload = decode_data_uri(uri)
    return mime_type, Image.open(io.BytesIO(payload))


class FakeResponse:
    def __init__(self, content, status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stands in for requests.Session."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class SolidRasterizer(Rasterizer):
    """Returns a fixed-size bitmap regardless of the tree."""

    def __init__(self, size):
        self.size = size
        self.calls = []

    def rasterize(self, node, scale=2.0, background="#ffffff"):
        self.calls.append((node.tag, scale, background))
        return Image.new("RGB", self.size, (0, 128, 0))


@pytest.mark.parametrize("size,bounds,expected", [
    ((600, 200), (300, 150), (300, 100)),
    ((200, 600), (300, 150), (50, 150)),
    ((100, 50), (300, 150), (100, 50)),
    ((1000, 400), (300, None), (300, 120)),
    ((1000, 3), (100, 100), (100, 1)),
])
def test_calculate_dimensions(size, bounds, expected):
    """Images are fitted within both bounds and never upscaled."""
    assert calculate_dimensions(*size, *bounds) == expected


def test_optimize_png_bytes(png_bytes):
    optimizer = ImageOptimizer(OptimizationOptions(max_width=300, max_height=150))
    mime_type, image = open_data_uri(optimizer.optimize_from_file(png_bytes))

    assert mime_type == "image/png"
    assert image.size == (300, 100)


def test_optimize_from_path(tmp_path, png_factory):
    path = tmp_path / "logo.png"
    path.write_bytes(png_factory(120, 40))

    uri = ImageOptimizer().optimize_from_file(path)
    _, image = open_data_uri(uri)
    assert image.size == (120, 40)


def test_jpeg_output_flattens_transparency(png_factory):
    """JPEG has no alpha channel, so transparent pixels become white."""
    transparent = png_factory(20, 20, color=(0, 0, 0, 0))
    optimizer = ImageOptimizer(OptimizationOptions(format=ImageFormat.JPEG, quality=0.9))

    mime_type, image = open_data_uri(optimizer.optimize_from_file(transparent))
    assert mime_type == "image/jpeg"
    assert all(channel > 245 for channel in image.convert("RGB").getpixel((10, 10)))


def test_background_color_is_painted_behind(png_factory):
    transparent = png_factory(20, 20, color=(0, 0, 0, 0))
    optimizer = ImageOptimizer(OptimizationOptions(background_color="white"))

    _, image = open_data_uri(optimizer.optimize_from_file(transparent))
    assert image.convert("RGBA").getpixel((5, 5)) == (255, 255, 255, 255)


def test_transparent_background_is_kept(png_factory):
    transparent = png_factory(20, 20, color=(0, 0, 0, 0))
    _, image = open_data_uri(ImageOptimizer().optimize_from_file(transparent))
    assert image.convert("RGBA").getpixel((5, 5))[3] == 0


def test_unreadable_image_raises_load_error():
    with pytest.raises(LoadError):
        ImageOptimizer().optimize_from_file(b"definitely not an image")


@pytest.mark.parametrize("kwargs", [
    {"quality": 1.5},
    {"quality": -0.1},
    {"format": "gif"},
])
def test_invalid_options(kwargs):
    with pytest.raises(ValidationError):
        OptimizationOptions(**kwargs)


def test_options_from_config():
    """Presets are read from the imaging section of the settings."""
    logo = OptimizationOptions.from_config("imaging.logo")
    print_logo = OptimizationOptions.from_config("imaging.print_logo")

    assert (logo.max_width, logo.max_height, logo.format) == (300, 150, ImageFormat.PNG)
    assert logo.is_transparent
    assert (print_logo.max_width, print_logo.max_height) == (200, 100)
    assert print_logo.background_color == "white"


def test_optimize_from_url(png_bytes):
    session = FakeSession(FakeResponse(png_bytes))
    optimizer = ImageOptimizer(OptimizationOptions(max_width=150, max_height=100), http_session=session)

    _, image = open_data_uri(optimizer.optimize_from_url("https://cdn.example.test/logo.png"))

    assert image.size == (150, 50)
    assert session.requested == [("https://cdn.example.test/logo.png", 10)]


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("offline")),
    FakeSession(FakeResponse(b"", status_code=404)),
    FakeSession(FakeResponse(b"<html>not an image</html>")),
])
def test_url_failures_raise_load_error(session):
    optimizer = ImageOptimizer(http_session=session)
    with pytest.raises(LoadError):
        optimizer.optimize_from_url("https://cdn.example.test/logo.png")


def test_optimize_from_element():
    """Render subtrees are captured at 2x and fitted to the bounds."""
    rasterizer = SolidRasterizer((800, 400))
    optimizer = ImageOptimizer(OptimizationOptions(max_width=300, max_height=150), rasterizer=rasterizer)

    _, image = open_data_uri(optimizer.optimize_from_element(RenderNode("div")))

    assert image.size == (300, 150)
    assert rasterizer.calls == [("div", 2.0, None)]


def test_upload_validation():
    """Type is checked before size."""
    uploader = LogoUploader(max_bytes=10)

    with pytest.raises(ValidationError):
        uploader.validate(UploadedFile.from_bytes("logo.gif", "image/gif", b"GIF89a"))
    with pytest.raises(ValidationError):
        uploader.validate(UploadedFile.from_bytes("logo.png", "image/png", b"x" * 11))
    uploader.validate(UploadedFile.from_bytes("logo.png", "image/png", b"x" * 10))


def test_upload_rejections_are_reported():
    uploader = LogoUploader(max_bytes=10)

    wrong_type = uploader.upload(UploadedFile.from_bytes("logo.gif", "image/gif", b"GIF89a"))
    too_large = uploader.upload(UploadedFile.from_bytes("logo.png", "image/png", b"x" * 11))

    assert (wrong_type.success, wrong_type.title) == (False, "Invalid File Type")
    assert (too_large.success, too_large.title) == (False, "File Too Large")


def test_upload_optimizes(tmp_path, png_bytes):
    path = tmp_path / "logo.png"
    path.write_bytes(png_bytes)
    upload = UploadedFile.from_path(path)

    result = LogoUploader().upload(upload)

    assert upload.content_type == "image/png"
    assert result.success and result.optimized
    assert result.title == "Logo Uploaded"
    assert open_data_uri(result.data_uri)[1].size == (300, 100)


def test_upload_falls_back_to_raw_embedding():
    """Files the optimizer cannot decode are embedded unchanged."""
    svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>'
    result = LogoUploader().upload(UploadedFile.from_bytes("logo.svg", "image/svg+xml", svg))

    assert result.success
    assert result.optimized is False
    assert result.description == "Logo uploaded successfully (optimization unavailable)."
    assert result.data_uri == "data:image/svg+xml;base64," + base64.b64encode(svg).decode("ascii")


@pytest.mark.parametrize("error", [
    ValidationError("target_width", 0, "Must be positive"),
    MemoryError(),
])
def test_upload_falls_back_on_any_optimizer_failure(png_bytes, error):
    def failing(source):
        raise error

    upload = UploadedFile.from_bytes("logo.png", "image/png", png_bytes)
    result = LogoUploader(optimize=failing).upload(upload)

    assert result.success
    assert result.optimized is False
    assert result.data_uri == encode_data_uri("image/png", png_bytes)


def test_upload_fails_when_file_cannot_be_read():
    def broken(source):
        raise LoadError("logo.png", "decoder missing")

    upload = UploadedFile(filename="logo.png", content_type="image/png", size=100)
    result = LogoUploader(optimize=broken).upload(upload)

    assert result.success is False
    assert result.title == "Upload Failed"
