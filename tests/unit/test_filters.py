import numpy as np
import pytest

from filterchain.domain.services import filters as F


def _img(values) -> np.ndarray:
    arr = np.array(values, dtype=np.float32)
    return np.repeat(arr[..., None], 3, axis=2)


def test_brightness_scales_and_clips():
    img = _img([[0.0, 0.5], [0.9, 1.0]])
    out = F.brightness(img, {"level": 1.2})
    assert out.dtype == np.float32
    assert np.isclose(out[0, 1, 0], 0.6)
    assert np.isclose(out[1, 1, 0], 1.0)


def test_brightness_accepts_string_level():
    img = _img([[0.5]])
    out = F.brightness(img, {"level": "2"})
    assert np.isclose(out[0, 0, 0], 1.0)


def test_invert():
    img = _img([[0.0, 0.25], [0.75, 1.0]])
    assert np.allclose(F.invert(img, {}), 1.0 - img)


def test_grayscale_keeps_three_equal_channels():
    img = np.zeros((2, 2, 3), dtype=np.float32)
    img[..., 0] = 1.0
    out = F.grayscale(img, {})
    assert out.shape == (2, 2, 3)
    assert np.allclose(out[..., 0], 0.299)
    assert np.allclose(out[..., 0], out[..., 2])


def test_binarize_threshold():
    img = _img([[0.2, 0.8]])
    out = F.binarize(img, {"threshold": 0.5})
    assert out[0, 0, 0] == 0.0
    assert out[0, 1, 0] == 1.0


def test_blur_radius_zero_is_identity_and_flat_image_is_unchanged():
    img = _img(np.linspace(0, 1, 12).reshape(3, 4))
    assert np.allclose(F.blur(img, {"radius": 0.0}), img)
    flat = np.full((5, 5, 3), 0.4, dtype=np.float32)
    assert np.allclose(F.blur(flat, {"radius": 2.0}), flat, atol=1e-6)


def test_blur_averages_neighbors():
    img = np.zeros((3, 3, 3), dtype=np.float32)
    img[1, 1] = 0.9
    out = F.blur(img, {"radius": 1.0})
    assert np.isclose(out[1, 1, 0], 0.1)


def test_blur_negative_radius_rejected():
    with pytest.raises(ValueError):
        F.blur(_img([[0.1]]), {"radius": -1.0})


def test_rotate_keeps_shape():
    img = _img([[0.0, 0.5, 1.0], [0.2, 0.4, 0.6]])
    assert F.rotate(img, {"angle": 90.0}).shape == img.shape


def test_flip_horizontal_and_bad_direction():
    img = _img([[0.1, 0.9]])
    assert np.allclose(F.flip(img, {"direction": "horizontal"})[0, :, 0], [0.9, 0.1])
    with pytest.raises(ValueError, match="Unsupported flip direction"):
        F.flip(img, {"direction": "diagonal"})


def test_translate_moves_right_and_fills_zero():
    img = _img([[0.1, 0.2, 0.3]])
    out = F.translate(img, {"dx": 1.0, "dy": 0.0})
    assert np.allclose(out[0, :, 0], [0.0, 0.1, 0.2])


def test_reduce_resolution_float_factor():
    img = _img(np.ones((4, 4)))
    assert F.reduce_resolution(img, {"factor": 2.0}).shape == (2, 2, 3)


def test_default_filter_names_are_unique():
    names = [name for name, _, _ in F.DEFAULT_FILTERS]
    assert len(names) == len(set(names))
    assert {"grayscale", "brightness"} <= set(names)


@pytest.mark.parametrize("value", ["nan", "inf", float("-inf")])
def test_non_finite_parameters_are_rejected(value):
    with pytest.raises(ValueError, match="finite"):
        F.brightness(_img([[0.5]]), {"level": value})
