import base64
import io

from PIL import Image

from lexicon.images import decode_data_uri, load_image


def png_data_uri(size=(64, 32)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def test_decode_data_uri():
    assert decode_data_uri("data:image/png;base64,AQID") == b"\x01\x02\x03"


def test_non_data_uris_are_ignored():
    assert decode_data_uri("") is None
    assert decode_data_uri("https://example.com/a.png") is None
    assert decode_data_uri("data:image/png,plain") is None
    assert decode_data_uri("data:image/png;base64,not*base64") is None


def test_load_image_opens_png():
    image = load_image(png_data_uri())
    assert image.size == (64, 32)


def test_load_image_shrinks_to_fit():
    image = load_image(png_data_uri((400, 200)), max_size=(100, 100))
    assert image.size == (100, 50)


def test_corrupt_image_returns_none():
    uri = "data:image/png;base64," + base64.b64encode(b"not an image").decode("ascii")
    assert load_image(uri) is None
    assert load_image("") is None
