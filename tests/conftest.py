import logging
import numpy  as np
import pandas as pd
import xarray as xr
import pytest
from pathlib import Path

from sea_ice_ops_config  import ForecastOpsConfig, load_config
from sea_ice_ops_errors  import TaskError
from sea_ice_ops_tasks   import TaskRunner
from sea_ice_ops_toolbox import SeaIceOpsToolbox, LOGGER_NAME

FORECAST_NAME = "fc.2024-05-21_north"


class FakeRunner(TaskRunner):
    """
    TaskRunner that never starts a process.

    It records each task and writes the files the real IceNet tool would have
    written, so the retry and output checks of `TaskRunner.run` still apply.
    `fail_on` maps a task name to a predicate on the task; a match raises TaskError.
    """
    def __init__(self, forecast_name=FORECAST_NAME, fail_on=None, **kwargs):
        super().__init__(**kwargs)
        self.forecast_name = forecast_name
        self.fail_on       = fail_on or {}
        self.tasks         = []

    def _execute(self, task):
        self.tasks.append(task)
        check = self.fail_on.get(task.name)
        if check is not None and check(task):
            raise TaskError(task.name, "exited with status 1", returncode=1)
        handler = getattr(self, f"_fake_{task.name.split('.')[0]}", None)
        if handler is not None:
            handler(task)
        return None

    def _prefix(self, date_str):
        return f"{self.forecast_name}.{date_str}."

    def _fake_geotiff(self, task):
        D_out, date_str = Path(task.argv[2]), task.argv[4]
        for lt in (1, 2):
            Path(D_out, f"{self._prefix(date_str)}{lt}.tiff").touch()

    def _fake_plot(self, task, suffixes):
        D_out    = Path(task.argv[task.argv.index("-o") + 1])
        date_str = task.argv[-1]
        for sfx in suffixes:
            Path(D_out, f"{self._prefix(date_str)}{sfx}").touch()

    def _fake_forecast_movie(self, task):
        self._fake_plot(task, ["sic_mean.mp4"])

    def _fake_forecast_stills(self, task):
        self._fake_plot(task, ["sic_mean.1.png", "sic_mean.2.png"])

    def _fake_stddev_movie(self, task):
        self._fake_plot(task, ["sic_stddev.stddev.mp4"])

    def _fake_stddev_stills(self, task):
        self._fake_plot(task, ["sic_stddev.1.stddev.png"])

    def _fake_output_file(self, task):
        Path(task.argv[task.argv.index("-o") + 1]).touch()

    _fake_bin_accuracy = _fake_output_file
    _fake_sic_error    = _fake_output_file
    _fake_sie_error    = _fake_output_file

    def names(self):
        return [t.name for t in self.tasks]


def write_forecast_file(P_nc, dates, n_leadtime=3):
    times = pd.to_datetime(dates)
    ds = xr.Dataset({"sic_mean"  : (("time", "yc", "xc", "leadtime"), np.zeros((len(times), 4, 4, n_leadtime))),
                     "sic_stddev": (("time", "yc", "xc", "leadtime"), np.zeros((len(times), 4, 4, n_leadtime)))},
                    coords={"time": times, "yc": np.arange(4), "xc": np.arange(4),
                            "leadtime": np.arange(1, n_leadtime + 1)})
    Path(P_nc).parent.mkdir(parents=True, exist_ok=True)
    ds.to_netcdf(P_nc)
    return Path(P_nc)


def write_obs_file(P_nc, first, last):
    times = pd.date_range(first, last, freq="D")
    ds = xr.Dataset({"ice_conc": (("time", "yc", "xc"), np.zeros((len(times), 2, 2)))},
                    coords={"time": times, "yc": np.arange(2), "xc": np.arange(2)})
    Path(P_nc).parent.mkdir(parents=True, exist_ok=True)
    ds.to_netcdf(P_nc)
    return Path(P_nc)


def write_templates(D_):
    Path(D_, "template_LICENSE.md").write_text("license\n")
    Path(D_, "template_README.md").write_text("readme\n")


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """An empty operational working directory with templates, as cwd."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SEA_ICE_OPS_CONFIG", raising=False)
    write_templates(tmp_path)
    return tmp_path


@pytest.fixture
def forecast_inputs(workdir):
    """Prediction file and two-date manifest for FORECAST_NAME, OSI-SAF data up to 2024-05-25."""
    write_forecast_file(Path(workdir, "results", "predict", f"{FORECAST_NAME}.nc"),
                        ["2024-05-21", "2024-05-22"])
    Path(workdir, f"{FORECAST_NAME}.csv").write_text("2024-05-21\n2024-05-22\n")
    write_obs_file(Path(workdir, "data", "osisaf", "north", "siconca", "2024.nc"), "2024-01-01", "2024-05-25")
    return workdir


@pytest.fixture
def make_toolbox():
    def _make(forecast_name=FORECAST_NAME, runner=None, **kwargs):
        kwargs.setdefault("obs_year", 2024)
        config = ForecastOpsConfig.from_args(forecast_name, config=load_config(), **kwargs)
        runner = runner if runner is not None else FakeRunner(forecast_name=forecast_name)
        return SeaIceOpsToolbox(config, runner=runner)
    return _make
