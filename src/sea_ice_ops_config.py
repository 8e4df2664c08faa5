import json, os, re, copy
import pandas  as pd
from dataclasses import dataclass, field
from pathlib     import Path
from typing      import Optional, Tuple

from sea_ice_ops_errors import ConfigurationError, ForecastOpsError
from sea_ice_ops_region import parse_region, GeoBounds

__all__ = ["ForecastOpsConfig", "ConfigurationError", "ForecastOpsError",
           "DEFAULT_CONFIG", "load_config", "extract_hemisphere"]

HEMISPHERE_REGEX = re.compile(r"^.+_(north|south)$")

DEFAULT_CONFIG = {
    "D_dict"                  : {"results"   : "results",
                                 "logs"      : "log",
                                 "data"      : "data",
                                 "templates" : ".",
                                 "manifests" : ".",
                                 "runner_logs" : "logs"},
    "max_leadtime"            : 93,
    "bin_accuracy_thresholds" : [0.15, 0.5, 0.8, 0.9],
    "hemispheres"             : ["south", "north"],
    "obs_sic_fmt"             : "osisaf/{hemisphere}/siconca/{year}.nc",
    "templates"               : {"template_LICENSE.md" : "LICENSE.md",
                                 "template_README.md"  : "README.md"},
    "task_retries"            : 0,
    "task_timeout"            : None,
    "tools_dict"              : {"geotiff"       : "icenet_output_geotiff",
                                 "plot_forecast" : "icenet_plot_forecast",
                                 "bin_accuracy"  : "icenet_plot_bin_accuracy",
                                 "plot_metrics"  : "icenet_plot_metrics",
                                 "sic_error"     : "icenet_plot_sic_error",
                                 "sie_error"     : "icenet_plot_sie_error",
                                 "data_era5"     : "icenet_data_era5",
                                 "data_sic"      : "icenet_data_sic",
                                 "prediction"    : "./run_prediction.sh"},
    "runner_dict"             : {"era5_workers"    : 10,
                                 "data_args_era5"  : "",
                                 "train_data_name" : "",
                                 "prediction_mode" : "forecast"},
}


def load_config(P_json=None):
    """
    Load the JSON configuration layered over `DEFAULT_CONFIG`.

    Lookup order is: `P_json`, `$SEA_ICE_OPS_CONFIG`, `./sea_ice_ops_config.json`.
    If none exist the built-in defaults are returned. Nested dictionaries are
    merged one level deep so a file only needs to name the keys it changes.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if P_json is None:
        P_json = os.environ.get("SEA_ICE_OPS_CONFIG")
    if P_json is None and Path("sea_ice_ops_config.json").exists():
        P_json = "sea_ice_ops_config.json"
    if P_json is None:
        return config
    P_json = Path(P_json)
    if not P_json.exists():
        raise ConfigurationError(f"configuration file {P_json} does not exist")
    try:
        with open(P_json, 'r') as f:
            user_config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"could not parse configuration file {P_json}: {e}") from e
    for key, val in user_config.items():
        if isinstance(val, dict) and isinstance(config.get(key), dict):
            config[key].update(val)
        else:
            config[key] = val
    return config


def extract_hemisphere(forecast_name):
    """Return 'north' or 'south' from a '<base>_<hemisphere>' forecast identifier."""
    m = HEMISPHERE_REGEX.match(forecast_name or "")
    if m is None:
        raise ConfigurationError(f"Hemisphere from {forecast_name} not available, raise an issue")
    return m.group(1)


@dataclass(frozen=True)
class ForecastOpsConfig:
    """
    Immutable settings for one Asset Producer run.

    Built once by `from_args` and handed to `SeaIceOpsToolbox`; nothing in the
    pipeline reads ambient state beyond this object.
    """
    forecast_name    : str
    hemisphere       : str
    region           : object          = None
    crs              : Optional[str]   = None
    max_leadtime     : int             = 93
    no_clip_region   : bool            = False
    verbose          : bool            = False
    resume           : bool            = False
    obs_year         : int             = field(default_factory=lambda: pd.Timestamp.now().year)
    D_results        : Path            = Path("results")
    D_logs           : Path            = Path("log")
    D_data           : Path            = Path("data")
    D_templates      : Path            = Path(".")
    D_manifests      : Path            = Path(".")
    thresholds       : Tuple[float, ...] = (0.15, 0.5, 0.8, 0.9)
    templates        : Tuple[Tuple[str, str], ...] = (("template_LICENSE.md", "LICENSE.md"),
                                                      ("template_README.md" , "README.md"))
    obs_sic_fmt      : str             = "osisaf/{hemisphere}/siconca/{year}.nc"
    tools            : Tuple[Tuple[str, str], ...] = tuple(DEFAULT_CONFIG["tools_dict"].items())
    task_retries     : int             = 0
    task_timeout     : Optional[float] = None

    @classmethod
    def from_args(cls,
                  forecast_name,
                  region         = None,
                  crs            = None,
                  max_leadtime   = None,
                  no_clip_region = False,
                  verbose        = False,
                  resume         = False,
                  obs_year       = None,
                  P_json         = None,
                  config         = None):
        """
        Validate CLI-level inputs and merge them over the JSON configuration.

        Parameters
        ----------
        forecast_name : str
            Prediction name with hemisphere postfix, e.g. ``fc.2024-05-21_north``.
        region : str | PixelBounds | GeoBounds, optional
            Raw region string (``x_min,y_min,x_max,y_max`` or ``l<lon_min>,<lat_min>,<lon_max>,<lat_max>``)
            or an already-parsed region.
        config : dict, optional
            Pre-loaded configuration; otherwise `load_config(P_json)` is used.

        Raises
        ------
        ConfigurationError
            Unknown hemisphere, malformed region or a non-positive lead time.
        """
        config     = config if config is not None else load_config(P_json)
        hemisphere = extract_hemisphere(forecast_name)
        if isinstance(region, str) or region is None:
            region = parse_region(region)
        max_leadtime = max_leadtime if max_leadtime is not None else config.get("max_leadtime", 93)
        try:
            max_leadtime = int(max_leadtime)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"max leadtime must be an integer, got {max_leadtime!r}") from e
        if max_leadtime < 1:
            raise ConfigurationError(f"max leadtime must be at least 1, got {max_leadtime}")
        D_dict = config.get("D_dict", {})
        return cls(forecast_name  = forecast_name,
                   hemisphere     = hemisphere,
                   region         = region,
                   crs            = crs,
                   max_leadtime   = max_leadtime,
                   no_clip_region = bool(no_clip_region),
                   verbose        = bool(verbose),
                   resume         = bool(resume),
                   obs_year       = obs_year if obs_year is not None else pd.Timestamp.now().year,
                   D_results      = Path(D_dict.get("results"  , "results")),
                   D_logs         = Path(D_dict.get("logs"     , "log")),
                   D_data         = Path(D_dict.get("data"     , "data")),
                   D_templates    = Path(D_dict.get("templates", ".")),
                   D_manifests    = Path(D_dict.get("manifests", ".")),
                   thresholds     = tuple(float(t) for t in config.get("bin_accuracy_thresholds", [0.15, 0.5, 0.8, 0.9])),
                   templates      = tuple(config.get("templates", {}).items()),
                   obs_sic_fmt    = config.get("obs_sic_fmt", "osisaf/{hemisphere}/siconca/{year}.nc"),
                   tools          = tuple(config.get("tools_dict", {}).items()),
                   task_retries   = int(config.get("task_retries", 0)),
                   task_timeout   = config.get("task_timeout"))

    @property
    def skip_metrics(self):
        return isinstance(self.region, GeoBounds)

    @property
    def D_output(self):
        return Path(self.D_results, "forecasts", self.forecast_name)

    @property
    def D_log(self):
        return Path(self.D_logs, "forecasts", self.forecast_name)

    @property
    def P_forecast(self):
        return Path(self.D_results, "predict", f"{self.forecast_name}.nc")

    @property
    def P_manifest(self):
        return Path(self.D_manifests, f"{self.forecast_name}.csv")

    @property
    def P_obs_sic(self):
        return Path(self.D_data, self.obs_sic_fmt.format(hemisphere=self.hemisphere, year=self.obs_year))

    @property
    def leadtime_range(self):
        return f"1..{self.max_leadtime}"

    def tool(self, key):
        tools = dict(self.tools)
        if key not in tools:
            raise ConfigurationError(f"no executable configured for tool '{key}'")
        return tools[key]

    def region_args(self):
        return self.region.to_cli_args() if self.region is not None else []

    def plot_args(self):
        """Extra arguments handed to icenet_plot_forecast only."""
        args = []
        if self.crs:
            args += ["--crs", self.crs]
        if self.no_clip_region:
            args.append("--no-clip-region")
        if self.verbose:
            args.append("-v")
        return args
