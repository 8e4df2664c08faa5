import xarray as xr
import pandas as pd
from pathlib  import Path

from sea_ice_ops_errors import ConfigurationError, ForecastOpsError

__all__ = ["SeaIceOpsObservations", "latest_observation_date", "read_forecast_dates"]


def latest_observation_date(P_obs):
    """
    Most recent day present in an observational SIC file, as a normalised `pd.Timestamp`.

    Time of day and timezone are discarded; only the calendar date is kept.
    """
    P_obs = Path(P_obs)
    if not P_obs.exists():
        raise ForecastOpsError(f"observational SIC file {P_obs} does not exist")
    with _open_netcdf(P_obs, "observational SIC") as ds:
        if "time" not in ds.coords or ds.time.size == 0:
            raise ForecastOpsError(f"observational SIC file {P_obs} has no time steps")
        t_max = ds.time.values.max()
    return pd.Timestamp(t_max).normalize()


def _open_netcdf(P_nc, kind):
    try:
        return xr.open_dataset(P_nc)
    except (ValueError, OSError) as e:
        raise ForecastOpsError(f"{kind} file {P_nc} could not be read: {e}") from e


def read_forecast_dates(P_manifest):
    """
    Read the whitespace separated forecast date manifest that accompanies a prediction.

    Returns the dates as ``YYYY-MM-DD`` strings in file order.
    """
    P_manifest = Path(P_manifest)
    if not P_manifest.exists():
        raise ConfigurationError(f"forecast date manifest {P_manifest} does not exist")
    with open(P_manifest, 'r') as f:
        entries = f.read().split()
    dates = []
    for entry in entries:
        try:
            dates.append(pd.Timestamp(entry).strftime("%Y-%m-%d"))
        except ValueError as e:
            raise ConfigurationError(f"invalid forecast date '{entry}' in {P_manifest}") from e
    return dates


class SeaIceOpsObservations:

    def __init__(self, **kwargs):
        self._obs_latest = None

    ####################################################################################################
    ##                                     OBSERVATIONAL GATE
    ####################################################################################################
    def latest_observation(self, P_obs=None):
        """Latest OSI-SAF SIC date for this hemisphere, read once and cached for the run."""
        if P_obs is not None:
            return latest_observation_date(P_obs)
        if self._obs_latest is None:
            self._obs_latest = latest_observation_date(self.config.P_obs_sic)
            self.logger.info(f"latest observational SIC date: {self._obs_latest:%Y-%m-%d} ({self.config.P_obs_sic})")
        return self._obs_latest

    def metrics_available(self, date_str, latest=None):
        """
        Whether the observational record covers `date_str` well enough for metrics.

        True only when the latest observation is strictly later than the forecast
        date plus one day.
        """
        latest    = latest if latest is not None else self.latest_observation()
        threshold = pd.Timestamp(date_str) + pd.Timedelta(days=1)
        return pd.Timestamp(latest) > threshold

    ####################################################################################################
    ##                                     FORECAST FILE I/O
    ####################################################################################################
    def forecast_dates(self):
        dates = read_forecast_dates(self.config.P_manifest)
        self.logger.info(f"{len(dates)} forecast date(s) listed in {self.config.P_manifest}")
        return dates

    def extract_forecast_date(self, date_str, P_out):
        """
        Write the single-date time slice of the prediction file to `P_out`.

        Raises `ForecastOpsError` if the prediction file is missing or holds no
        data for `date_str`.
        """
        P_fc = self.config.P_forecast
        if not P_fc.exists():
            raise ForecastOpsError(f"forecast file {P_fc} does not exist")
        with _open_netcdf(P_fc, "forecast") as ds:
            ds_date = ds.sel(time=slice(date_str, date_str))
            if ds_date.time.size == 0:
                raise ForecastOpsError(f"forecast file {P_fc} has no data for {date_str}")
            ds_date.load().to_netcdf(P_out)
        self.logger.info(f"single date forecast written: {P_out}")
        return Path(P_out)
