import json
import pytest
from pathlib import Path

from sea_ice_ops_config import DEFAULT_CONFIG, ForecastOpsConfig, extract_hemisphere, load_config
from sea_ice_ops_errors import ConfigurationError
from sea_ice_ops_region import GeoBounds, PixelBounds

P_REPO_CONFIG = Path(__file__).resolve().parents[1] / "sea_ice_ops_config.json"


@pytest.mark.parametrize("name, hemi", [("fc.2024-05-21_north", "north"),
                                        ("fc.2024-05-21_south", "south"),
                                        ("a_b_south", "south")])
def test_extract_hemisphere(name, hemi):
    assert extract_hemisphere(name) == hemi


@pytest.mark.parametrize("name", ["fc.2024-05-21", "fc_east", "_north", "fc_North", "fc_north_x", "", None])
def test_extract_hemisphere_rejects(name):
    with pytest.raises(ConfigurationError):
        extract_hemisphere(name)


def test_shipped_json_matches_defaults():
    assert load_config(P_REPO_CONFIG) == DEFAULT_CONFIG


def test_load_config_merges_nested(tmp_path, monkeypatch):
    monkeypatch.delenv("SEA_ICE_OPS_CONFIG", raising=False)
    P_json = tmp_path / "ops.json"
    P_json.write_text(json.dumps({"tools_dict": {"geotiff": "/opt/bin/geotiff"}, "max_leadtime": 7}))
    config = load_config(P_json)
    assert config["tools_dict"]["geotiff"] == "/opt/bin/geotiff"
    assert config["tools_dict"]["plot_forecast"] == "icenet_plot_forecast"
    assert config["max_leadtime"] == 7
    assert DEFAULT_CONFIG["max_leadtime"] == 93


def test_load_config_from_environment(tmp_path, monkeypatch):
    P_json = tmp_path / "env.json"
    P_json.write_text(json.dumps({"task_retries": 2}))
    monkeypatch.setenv("SEA_ICE_OPS_CONFIG", str(P_json))
    assert load_config()["task_retries"] == 2


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.json")
    P_bad = tmp_path / "bad.json"
    P_bad.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config(P_bad)


def test_from_args_defaults():
    config = ForecastOpsConfig.from_args("fc.2024-05-21_north", config=load_config(P_REPO_CONFIG), obs_year=2024)
    assert config.hemisphere == "north"
    assert config.max_leadtime == 93
    assert config.leadtime_range == "1..93"
    assert config.region is None
    assert not config.skip_metrics
    assert config.thresholds == (0.15, 0.5, 0.8, 0.9)
    assert config.D_output == Path("results/forecasts/fc.2024-05-21_north")
    assert config.D_log == Path("log/forecasts/fc.2024-05-21_north")
    assert config.P_forecast == Path("results/predict/fc.2024-05-21_north.nc")
    assert config.P_manifest == Path("fc.2024-05-21_north.csv")
    assert config.P_obs_sic == Path("data/osisaf/north/siconca/2024.nc")
    assert config.plot_args() == []
    assert config.region_args() == []


def test_from_args_region_variants():
    config = load_config(P_REPO_CONFIG)
    pixel  = ForecastOpsConfig.from_args("fc_south", region="70,155,145,240", config=config)
    geo    = ForecastOpsConfig.from_args("fc_south", region="l-100,55,-70,75", config=config)
    assert isinstance(pixel.region, PixelBounds) and not pixel.skip_metrics
    assert isinstance(geo.region, GeoBounds) and geo.skip_metrics


def test_plot_args_from_flags():
    config = ForecastOpsConfig.from_args("fc_north", crs="Mercator.GOOGLE", no_clip_region=True,
                                         verbose=True, max_leadtime=7, config=load_config(P_REPO_CONFIG))
    assert config.plot_args() == ["--crs", "Mercator.GOOGLE", "--no-clip-region", "-v"]
    assert config.leadtime_range == "1..7"


def test_config_is_immutable():
    config = ForecastOpsConfig.from_args("fc_north", config=load_config(P_REPO_CONFIG))
    with pytest.raises(AttributeError):
        config.max_leadtime = 5


@pytest.mark.parametrize("leadtime", [0, -3, "ten"])
def test_invalid_leadtime(leadtime):
    with pytest.raises(ConfigurationError):
        ForecastOpsConfig.from_args("fc_north", max_leadtime=leadtime, config=load_config(P_REPO_CONFIG))


def test_unknown_tool():
    config = ForecastOpsConfig.from_args("fc_north", config=load_config(P_REPO_CONFIG))
    assert config.tool("geotiff") == "icenet_output_geotiff"
    with pytest.raises(ConfigurationError):
        config.tool("teleport")
