from __future__ import annotations

import pytest

from batch_resizer.errors import ErrorKind, ResizeError, UnknownPreset
from batch_resizer.presets import BUILTIN_PRESETS, Preset, PresetCatalog, default_catalog


def test_builtin_presets_in_display_order() -> None:
    assert default_catalog().names() == [
        "340×570",
        "1040×570",
        "Instagram Square",
        "Instagram Story",
        "Facebook Cover",
        "Twitter Header",
        "YouTube Thumbnail",
        "HD 1080p",
        "HD 720p",
        "Small Web",
        "Thumbnail",
    ]


def test_builtin_preset_values() -> None:
    catalog = default_catalog()
    assert catalog["Instagram Story"] == Preset("Instagram Story", 1080, 1920, False)
    assert catalog["Twitter Header"].size == (1500, 500)
    assert catalog["Small Web"].maintain_aspect_ratio is True


def test_presets_have_positive_sizes() -> None:
    for preset in BUILTIN_PRESETS:
        assert preset.width > 0 and preset.height > 0


def test_unknown_preset_raises_resize_error() -> None:
    catalog = default_catalog()
    with pytest.raises(UnknownPreset) as exc_info:
        catalog["Poster"]
    assert isinstance(exc_info.value, ResizeError)
    assert exc_info.value.kind is ErrorKind.UNKNOWN_PRESET


def test_membership_and_get_do_not_raise() -> None:
    catalog = default_catalog()
    assert "Thumbnail" in catalog
    assert "Poster" not in catalog
    assert catalog.get("Poster") is None
    assert len(catalog) == 11


def test_catalog_is_read_only() -> None:
    catalog = default_catalog()
    with pytest.raises(TypeError):
        catalog["Custom"] = Preset("Custom", 10, 10, True)  # type: ignore[index]


def test_default_is_first_preset() -> None:
    assert default_catalog().default.name == "340×570"


def test_duplicate_names_are_rejected() -> None:
    with pytest.raises(ValueError):
        PresetCatalog([Preset("A", 1, 1, True), Preset("A", 2, 2, True)])


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 5)])
def test_preset_rejects_non_positive_size(width, height) -> None:
    with pytest.raises(ValueError):
        Preset("Bad", width, height, True)
