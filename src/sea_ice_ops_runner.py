import os, shlex, logging
import pandas as pd
from pathlib  import Path

from sea_ice_ops_config       import ForecastOpsConfig, load_config
from sea_ice_ops_errors       import ConfigurationError, ForecastOpsError
from sea_ice_ops_observations import latest_observation_date
from sea_ice_ops_tasks        import ExternalTask, TaskRunner
from sea_ice_ops_toolbox      import SeaIceOpsToolbox, close_file_logs, setup_logging

__all__ = ["ForecastRunner"]


class ForecastRunner:
    """
    Daily operational forecast: refresh observations, predict, produce assets.

    Each hemisphere is an independent unit of work. A failure in one is logged
    with its traceback and the remaining hemispheres still run; `run` reports
    which ones failed so the caller can set the exit status.

    Parameters
    ----------
    network : str
        Name of the trained IceNet network handed to the prediction script.
    config : dict, optional
        Loaded JSON configuration (see `load_config`).
    P_json : str | Path, optional
        Configuration file to load when `config` is not given.
    runner : TaskRunner, optional
        Executes the external tools; built from the configuration if omitted.
    today : str | pd.Timestamp, optional
        End of the year-to-date refresh window (default: now).
    environ : mapping, optional
        Source of ``DATA_ARGS_ERA5`` and ``TRAIN_DATA_NAME`` (default: `os.environ`).
    """
    def __init__(self, network,
                 config      = None,
                 P_json      = None,
                 runner      = None,
                 today       = None,
                 environ     = None,
                 hemispheres = None,
                 verbose     = False):
        if not network:
            raise ConfigurationError("a prediction network name is required")
        self.network     = network
        self.config      = config if config is not None else load_config(P_json)
        self.verbose     = verbose
        self.logger      = setup_logging(log_level=logging.DEBUG if verbose else logging.INFO)
        self.runner      = runner if runner is not None else TaskRunner(retries = self.config.get("task_retries", 0),
                                                                       timeout = self.config.get("task_timeout"),
                                                                       verbose = verbose,
                                                                       logger  = self.logger)
        self.today       = pd.Timestamp(today).normalize() if today is not None else pd.Timestamp.now().normalize()
        self.hemispheres = hemispheres if hemispheres is not None else self.config.get("hemispheres", ["south", "north"])
        environ          = environ if environ is not None else os.environ
        runner_dict      = self.config.get("runner_dict", {})
        tools_dict       = self.config.get("tools_dict", {})
        D_dict           = self.config.get("D_dict", {})
        self.tools       = tools_dict
        self.D_data      = Path(D_dict.get("data", "data"))
        self.D_logs      = Path(D_dict.get("runner_logs", "logs"))
        self.era5_workers    = runner_dict.get("era5_workers", 10)
        self.prediction_mode = runner_dict.get("prediction_mode", "forecast")
        self.data_args_era5  = environ.get("DATA_ARGS_ERA5" , runner_dict.get("data_args_era5", ""))
        self.train_data_name = environ.get("TRAIN_DATA_NAME", runner_dict.get("train_data_name", ""))
        if not self.train_data_name:
            raise ConfigurationError("TRAIN_DATA_NAME must be set in the environment or runner_dict.train_data_name")
        for hemi in self.hemispheres:
            if hemi not in ("north", "south"):
                raise ConfigurationError(f"unknown hemisphere '{hemi}' in configuration")

    @property
    def date_range(self):
        return f"{self.today.year}-01-01", self.today.strftime("%Y-%m-%d")

    def _tool(self, key):
        if key not in self.tools:
            raise ConfigurationError(f"no executable configured for tool '{key}'")
        return self.tools[key]

    def era5_task(self, hemi):
        dt0, dtN = self.date_range
        argv = ([self._tool("data_era5"), "-w", str(self.era5_workers), "-v"] +
                shlex.split(self.data_args_era5) + [hemi, dt0, dtN])
        return ExternalTask(name="data_era5", argv=tuple(argv), P_log=Path(self.D_logs, f"fc.era5.{hemi}.log"))

    def sic_task(self, hemi):
        dt0, dtN = self.date_range
        argv = (self._tool("data_sic"), "-v", hemi, dt0, dtN)
        return ExternalTask(name="data_sic", argv=argv, P_log=Path(self.D_logs, f"fc.sic.{hemi}.log"))

    def prediction_task(self, hemi, init_str):
        argv = (self._tool("prediction"), f"fc.{init_str}", self.network, hemi,
                self.prediction_mode, self.train_data_name)
        return ExternalTask(name = "prediction",
                            argv = argv,
                            env  = (("FORECAST_START", init_str), ("FORECAST_END", init_str)),
                            P_log = Path(self.D_logs, f"fc.{hemi}.log"))

    def forecast_init_date(self, hemi):
        """Latest OSI-SAF day for `hemi` in the current year; the forecast starts from it."""
        obs_fmt = self.config.get("obs_sic_fmt", "osisaf/{hemisphere}/siconca/{year}.nc")
        P_obs   = Path(self.D_data, obs_fmt.format(hemisphere=hemi, year=self.today.year))
        return latest_observation_date(P_obs).strftime("%Y-%m-%d")

    def run_hemisphere(self, hemi):
        dt0, dtN = self.date_range
        self.logger.info(f"=== {hemi}: refreshing observations {dt0} to {dtN} ===")
        self.runner.run(self.era5_task(hemi))
        self.runner.run(self.sic_task(hemi))
        init_str = self.forecast_init_date(hemi)
        self.logger.info(f"{hemi}: forecast initialisation date {init_str}")
        self.runner.run(self.prediction_task(hemi, init_str))
        forecast_name = f"fc.{init_str}_{hemi}"
        ops_config    = ForecastOpsConfig.from_args(forecast_name,
                                                    verbose  = self.verbose,
                                                    obs_year = self.today.year,
                                                    config   = self.config)
        self.D_logs.mkdir(parents=True, exist_ok=True)
        setup_logging(logfile      = Path(self.D_logs, f"op_assets.{hemi}.log"),
                      log_level    = self.logger.level,
                      handler_name = "hemisphere")
        try:
            SeaIceOpsToolbox(ops_config, runner=self.runner).run()
        finally:
            close_file_logs()
        return forecast_name

    def run(self):
        """
        Run every configured hemisphere in order.

        Returns
        -------
        dict
            ``{hemisphere: exception}`` for each hemisphere that failed; empty on success.
        """
        failures = {}
        for hemi in self.hemispheres:
            try:
                self.run_hemisphere(hemi)
            except (ForecastOpsError, ConfigurationError, OSError) as e:
                self.logger.exception(f"{hemi}: forecast run failed: {e}")
                failures[hemi] = e
        if failures:
            self.logger.error(f"failed hemispheres: {', '.join(failures)}")
        else:
            self.logger.info("all hemispheres completed")
        return failures
