import pytest

from mangrovemapper.core.models import LandsatConfig
from mangrovemapper.preprocessing.landsat import (
    INDEX_BANDS,
    add_indices,
    apply_scale_factors,
    cloud_mask,
    mask_clouds,
    prepare_collection,
)


def test_apply_scale_factors_overwrites_optical_bands(fake_ee) -> None:
    image = fake_ee.Image("LC08_007047_20150101")

    scaled = apply_scale_factors(image, LandsatConfig())

    assert scaled.op == "addBands"
    optical, names, overwrite = scaled.args
    assert names is None and overwrite is True
    assert optical.lineage() == ["Image", "select", "multiply", "add"]
    assert optical.args == (-0.2,)
    assert optical.source.args == (0.0000275,)
    assert optical.source.source.args == ("SR_B.",)


def test_cloud_mask_checks_shadow_and_cloud_bits(fake_ee) -> None:
    qa = fake_ee.Image("qa")

    mask = cloud_mask(qa, LandsatConfig())

    assert mask.op == "And"
    assert [call.args[0] for call in fake_ee.recorder.named("bitwiseAnd")] == [8, 32]
    assert all(call.args == (0,) for call in fake_ee.recorder.named("eq"))


def test_cloud_mask_honours_configured_bits(fake_ee) -> None:
    cloud_mask(fake_ee.Image("qa"), LandsatConfig(cloud_shadow_bit=4, cloud_bit=3))

    assert [call.args[0] for call in fake_ee.recorder.named("bitwiseAnd")] == [16, 8]


def test_mask_clouds_keeps_reflectance_bands_and_timestamp(fake_ee) -> None:
    image = fake_ee.Image("scene")

    masked = mask_clouds(image, LandsatConfig())

    assert masked.op == "Image"
    copied = masked.args[0]
    assert copied.op == "copyProperties"
    assert copied.args == (image, ["system:time_start"])
    assert copied.source.op == "select"
    assert copied.source.args == ("SR_B[0-9]*",)
    assert copied.source.source.op == "updateMask"
    qa_select = fake_ee.recorder.named("select")[0]
    assert qa_select.args == ("QA_PIXEL",)


def test_add_indices_appends_every_index_band(fake_ee) -> None:
    image = fake_ee.Image("scene")

    result = add_indices(image)

    assert result.op == "addBands"
    bands = result.args[0]
    assert [band.args[0] for band in bands] == list(INDEX_BANDS)
    assert all(band.op == "rename" for band in bands)

    ndvi, ndmi, mndwi = bands[:3]
    assert ndvi.source.args == (["SR_B5", "SR_B4"],)
    assert ndmi.source.args == (["SR_B7", "SR_B3"],)
    assert mndwi.source.args == (["SR_B3", "SR_B6"],)

    gcvi = bands[-1].source
    assert gcvi.op == "expression"
    assert gcvi.args[0] == "(NIR/GREEN)-1"
    assert set(gcvi.args[1]) == {"NIR", "GREEN"}


def test_prepare_collection_filters_then_maps_each_step(fake_ee) -> None:
    config = LandsatConfig(collection="LANDSAT/LC08/C02/T1_L2")
    region = fake_ee.Geometry.Rectangle([-67.3, 17.9, -65.2, 18.5])

    collection = prepare_collection(config, region, start="2015-01-01", end="2023-12-31")

    assert collection.lineage() == ["ImageCollection", "filterBounds", "filterDate", "map", "map", "map"]
    root = fake_ee.recorder.named("ImageCollection")[0]
    assert root.args == ("LANDSAT/LC08/C02/T1_L2",)
    assert fake_ee.recorder.named("filterDate")[0].args == ("2015-01-01", "2023-12-31")

    scale_step = collection.source.source.args[0]
    assert scale_step(fake_ee.Image("scene")).op == "addBands"
    assert collection.args[0] is add_indices


def test_prepare_collection_without_dates_skips_date_filter(fake_ee) -> None:
    collection = prepare_collection(LandsatConfig(), fake_ee.Geometry("region"))

    assert "filterDate" not in collection.lineage()


def test_prepare_collection_requires_both_dates(fake_ee) -> None:
    with pytest.raises(ValueError):
        prepare_collection(LandsatConfig(), fake_ee.Geometry("region"), start="2015-01-01")
