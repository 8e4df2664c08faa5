import time, logging
from pathlib import Path

from sea_ice_ops_assets       import SeaIceOpsAssets
from sea_ice_ops_observations import SeaIceOpsObservations
from sea_ice_ops_tasks        import TaskRunner

__all__ = ["SeaIceOpsToolbox", "setup_logging", "close_file_logs"]

LOGGER_NAME = "sea_ice_ops"
F_log       = "produce_op_assets.log"


def setup_logging(logfile=None, log_level=logging.INFO, handler_name="run"):
    """
    Configure the shared `sea_ice_ops` logger.

    A stream handler is added once. A file handler named `handler_name` is
    swapped in whenever `logfile` is given, so successive runs in one process
    each log to their own file; file handlers under other names are left
    attached.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    if logfile:
        close_file_logs(handler_name)
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    for h in logger.handlers:
        h.setLevel(log_level)
    if logfile:
        fh = logging.FileHandler(logfile, mode='a')
        fh.set_name(handler_name)
        fh.setFormatter(formatter)
        fh.setLevel(log_level)
        logger.addHandler(fh)
        logger.info(f"log file connected: {logfile}")
    return logger


def close_file_logs(handler_name=None):
    """Detach and close the logger's file handlers, only those named `handler_name` if given."""
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.FileHandler) and handler_name in (None, h.get_name()):
            logger.removeHandler(h)
            h.close()


class SeaIceOpsToolbox(SeaIceOpsObservations, SeaIceOpsAssets):
    """
    Asset Producer for one IceNet prediction file.

    Composition
    -----------
    - SeaIceOpsObservations : forecast date manifest, single-date extraction,
                              OSI-SAF latest-date gate for metrics
    - SeaIceOpsAssets       : directory provisioning, external plotting/geotiff/
                              metric tasks, renaming, docs, checkpoints

    Parameters
    ----------
    config : ForecastOpsConfig
        Frozen run settings.
    runner : TaskRunner, optional
        Executes external tools; built from `config` if omitted.
    log_level : int, optional
        Defaults to DEBUG when `config.verbose`, else INFO.
    """
    def __init__(self, config, runner=None, log_level=None):
        self.config = config
        log_level   = log_level if log_level is not None else (logging.DEBUG if config.verbose else logging.INFO)
        self.log_level = log_level
        self.logger = setup_logging(log_level=log_level)
        self.runner = runner if runner is not None else TaskRunner(retries = config.task_retries,
                                                                   timeout = config.task_timeout,
                                                                   verbose = config.verbose,
                                                                   logger  = self.logger)
        SeaIceOpsObservations.__init__(self)
        SeaIceOpsAssets.__init__(self)

    def summary(self):
        """Log the settings this run will use."""
        self.logger.info("--- SeaIceOpsToolbox Summary ---")
        self.logger.info(f"Forecast Name       : {self.config.forecast_name}")
        self.logger.info(f"Hemisphere          : {self.config.hemisphere}")
        self.logger.info(f"Forecast File       : {self.config.P_forecast}")
        self.logger.info(f"Date Manifest       : {self.config.P_manifest}")
        self.logger.info(f"Region              : {self.config.region}")
        self.logger.info(f"Plot Args           : {' '.join(self.config.plot_args())}")
        self.logger.info(f"Max Leadtime        : {self.config.max_leadtime}")
        self.logger.info(f"Skip Metrics        : {self.config.skip_metrics}")
        self.logger.info(f"Resume              : {self.config.resume}")
        self.logger.info(f"Output Directory    : {self.config.D_output}")
        self.logger.info(f"Log Directory       : {self.config.D_log}")
        self.logger.info("--------------------------------")

    def run(self):
        """
        Produce all operational assets for the configured forecast.

        Returns the output directory. Any external tool failure propagates.
        """
        t0 = time.time()
        if self.config.skip_metrics:
            self.logger.warning("Note: The metrics such as binary accuracy, sic and sie error "
                                "do not currently support lat/lon based region bounds!")
        self.provision_directories()
        setup_logging(logfile=Path(self.config.D_log, F_log), log_level=self.log_level)
        self.summary()
        self.produce_assets()
        self.logger.info(f"Done, enjoy your forecasts in {self.config.D_output}")
        self.logger.info(f"Elapsed Time: {int(time.time() - t0)} seconds")
        return self.config.D_output
