import pytest

from mangrovemapper.analysis.anomaly import (
    AREA_BAND,
    AnomalyWorkflow,
    anomaly_from_reference,
    area_km2,
    mean_anomaly,
    presence_code,
    stable_mangrove,
    threshold_change,
)
from mangrovemapper.earthengine.geometry import StudyArea


def _workflow(fake_ee, config) -> AnomalyWorkflow:
    region = fake_ee.Geometry.Rectangle([-67.3, 17.9, -65.2, 18.5])
    study_area = StudyArea(region=region, clip_collection=fake_ee.FeatureCollection("TIGER/2018/Counties"))
    return AnomalyWorkflow(config, study_area)


def test_presence_code_encodes_after_as_two(fake_ee) -> None:
    before = fake_ee.Image("before")
    after = fake_ee.Image("after")

    code = presence_code(before, after)

    assert code.op == "add"
    assert code.args == (before,)
    where = code.source
    assert where.op == "where"
    assert where.args[1] == 2
    assert where.args[0].op == "eq" and where.args[0].args == (1,)


def test_area_km2_renames_to_fixed_band(fake_ee) -> None:
    area = area_km2(fake_ee.Image("gain"))

    assert area.op == "rename"
    assert area.args == (AREA_BAND,)
    (divide,) = fake_ee.recorder.named("divide")
    assert divide.args == (1e6,)
    assert divide.source.op == "Image.pixelArea"


def test_anomaly_keeps_scene_timestamp(fake_ee) -> None:
    image = fake_ee.Image("scene")
    mean = fake_ee.Image("mean")

    anomaly = anomaly_from_reference(image, mean)

    assert anomaly.op == "set"
    assert anomaly.args[0] == "system:time_start"
    assert anomaly.args[1].op == "get"
    assert anomaly.source.op == "subtract" and anomaly.source.args == (mean,)


def test_mean_anomaly_divides_sum_by_observation_count(fake_ee) -> None:
    collection = fake_ee.ImageCollection("landsat")

    result = mean_anomaly(collection, fake_ee.Image("mean"), "NDVI", "2021-01-01", "2023-12-31")

    assert result.op == "divide"
    assert result.source.op == "sum"
    assert result.args[0].op == "count"
    assert result.source.lineage() == ["ImageCollection", "filterDate", "select", "map", "sum"]


def test_threshold_change_buffers_gain_around_baseline(fake_ee) -> None:
    anomaly = fake_ee.Image("anomaly")
    baseline = fake_ee.Image("baseline")

    layers = threshold_change(anomaly, baseline, loss_threshold=-0.2, gain_threshold=0.2, buffer_meters=1000.0)

    buffer = layers["extent_buffer"]
    assert buffer.op == "focal_max"
    assert buffer.kwargs == {"radius": 1000.0, "kernelType": "circle", "units": "meters"}
    assert layers["ndvi_loss"].lineage() == ["Image", "lte", "selfMask", "updateMask"]
    assert layers["ndvi_loss"].args == (baseline,)
    assert layers["ndvi_gain"].args == (buffer,)


def test_stable_mangrove_assigns_class_value(fake_ee) -> None:
    layers = stable_mangrove(
        fake_ee.Image("anomaly"),
        fake_ee.Image("before"),
        fake_ee.Image("after"),
        loss_threshold=-0.2,
        gain_threshold=0.2,
        stable_value=7,
    )

    stable = layers["stable_mangrove"]
    assert stable.op == "where"
    assert stable.args[1] == 7
    assert stable.source.op == "Image" and stable.source.args == (0,)
    assert layers["stable_mangrove_classes"].lineage()[-2:] == ["add", "add"]


def test_build_products_is_cached(fake_ee, pipeline_config) -> None:
    workflow = _workflow(fake_ee, pipeline_config)

    products = workflow.build_products()

    assert workflow.build_products() is products
    assert {"mangrove_change", "anomaly", "ndvi_loss", "ndvi_gain", "stable_mangrove"} <= set(products)
    assert len(fake_ee.recorder.named("ImageCollection")) == 1


def test_build_products_requires_landcover_assets(fake_ee, pipeline_config) -> None:
    pipeline_config.assets.landcover_after = None

    with pytest.raises(ValueError, match="landcover"):
        _workflow(fake_ee, pipeline_config).build_products()


def test_area_statistics_reads_area_band(fake_ee, pipeline_config) -> None:
    fake_ee.recorder.info["reduceRegion"] = {AREA_BAND: 2.5}
    workflow = _workflow(fake_ee, pipeline_config)

    stats = workflow.area_statistics()

    assert stats == {"gain_km2": 2.5, "loss_km2": 2.5}
    calls = fake_ee.recorder.named("reduceRegion")
    assert len(calls) == 2
    assert calls[0].kwargs["maxPixels"] == 1e14
    assert calls[0].kwargs["scale"] == 30.0


def test_area_statistics_defaults_missing_values_to_zero(fake_ee, pipeline_config) -> None:
    fake_ee.recorder.info["reduceRegion"] = {AREA_BAND: None}

    assert _workflow(fake_ee, pipeline_config).area_statistics() == {"gain_km2": 0.0, "loss_km2": 0.0}


def test_anomaly_summary_reads_combined_reducer_keys(fake_ee, pipeline_config) -> None:
    fake_ee.recorder.info["reduceRegion"] = {"NDVI_mean": -0.05, "NDVI_count": 120}

    summary = _workflow(fake_ee, pipeline_config).anomaly_summary()

    assert summary == {"mean": -0.05, "count": 120}
    (combine,) = fake_ee.recorder.named("combine")
    assert combine.kwargs["sharedInputs"] is True


def test_export_requests_export_anomaly_asset(fake_ee, pipeline_config) -> None:
    workflow = _workflow(fake_ee, pipeline_config)
    products = workflow.build_products()

    (request,) = workflow.export_requests(products)

    assert request.image is products["anomaly"]
    assert request.destination == "asset"
    assert request.asset_id == "Anomaly"
