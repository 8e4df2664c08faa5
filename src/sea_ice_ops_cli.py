import argparse, sys, logging

from sea_ice_ops_config  import ForecastOpsConfig, load_config
from sea_ice_ops_errors  import ConfigurationError, ForecastOpsError
from sea_ice_ops_runner  import ForecastRunner
from sea_ice_ops_toolbox import SeaIceOpsToolbox, setup_logging

__all__ = ["produce_assets_main", "run_forecast_main", "build_assets_parser", "build_forecast_parser"]

ASSETS_EPILOG = """\
Examples:
  1) %(prog)s -v
    Runs script in verbose mode, in this case, just prints help.

  2) %(prog)s fc.2024-05-21_north 70,155,145,240
    Produce outputs from './results/predict/fc.2024-05-21_north.nc'
    and crop to only the pixel region of x_min=70, y_min=155, x_max=145, y_max=240.

  3) %(prog)s fc.2024-05-21_north l-100,55,-70,75
    Produce outputs from './results/predict/fc.2024-05-21_north.nc'
    and crop to lat/lon region of lat_min=55, lon_min=-100, lat_max=75, lon_max=-70.

  4) %(prog)s -n fc.2024-05-21_north l-100,55,-70,75
    Same as 3), but outputs north-facing plots instead of polar equal area.

  5) %(prog)s -c Mercator.GOOGLE fc.2024-05-21_north l-100,55,-70,75
    Same as 3), but outputs using Web Mercator for plots instead of polar equal area.
"""


class UsageArgumentParser(argparse.ArgumentParser):
    """Prints the full help, not just the usage line, and exits 1 on bad arguments."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def build_assets_parser():
    parser = UsageArgumentParser(prog            = "produce_op_assets",
                                 description     = "Generate forecast outputs from netCDF prediction file "
                                                   "(Outputs: geotiff, png, mp4). "
                                                   "Outputs to 'results/forecasts/<forecast name w/hemi>'",
                                 epilog          = ASSETS_EPILOG,
                                 formatter_class = argparse.RawDescriptionHelpFormatter)
    parser.add_argument("forecast_name",
                        help="Name of the prediction netCDF file, with hemisphere postfix ('_south'), e.g. 'forecastfile_south'.")
    parser.add_argument("region", nargs="?", default=None,
                        help="Region to clip. If prefixed with 'l', will use lat/lon, else, pixel bounds. "
                             "Specify via 'x_min,y_min,x_max,y_max' if using pixel bounds, or "
                             "'llon_min,lat_min,lon_max,lat_max' if using lat/lon bounds.")
    parser.add_argument("-c", "--crs", default=None,
                        help="Cartopy CRS to use for plotting forecasts (e.g. Mercator).")
    parser.add_argument("-l", "--max-leadtime", type=int, default=None,
                        help="Integer defining max leadtime to generate outputs for (default: 93).")
    parser.add_argument("-n", "--no-clip-region", action="store_true",
                        help="To not clip data when specifying lat/lon region with -c, else, depending on CRS, "
                             "plot may have missing regions.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose mode - debugging print of commands.")
    parser.add_argument("--resume", action="store_true",
                        help="Keep existing outputs and skip dates/steps already completed.")
    parser.add_argument("--config", default=None,
                        help="Path to JSON config file (default: $SEA_ICE_OPS_CONFIG or ./sea_ice_ops_config.json)")
    return parser


def produce_assets_main(argv=None):
    """Asset Producer entry point. Returns the process exit status."""
    args   = build_assets_parser().parse_args(argv)
    logger = setup_logging(log_level=logging.DEBUG if args.verbose else logging.INFO)
    logger.info(f"ARGS: {' '.join(sys.argv[1:] if argv is None else argv)}")
    try:
        config = ForecastOpsConfig.from_args(args.forecast_name,
                                             region         = args.region,
                                             crs            = args.crs,
                                             max_leadtime   = args.max_leadtime,
                                             no_clip_region = args.no_clip_region,
                                             verbose        = args.verbose,
                                             resume         = args.resume,
                                             P_json         = args.config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    if config.verbose:
        logger.debug("~~Verbosity enabled~~")
    try:
        SeaIceOpsToolbox(config).run()
    except (ConfigurationError, ForecastOpsError) as e:
        logger.error(f"asset production for {config.forecast_name} aborted: {e}")
        return 1
    return 0


def build_forecast_parser():
    parser = UsageArgumentParser(prog        = "run_era5_forecast",
                                 description = "Refresh ERA5 and OSI-SAF inputs, run the IceNet prediction "
                                               "and produce operational assets for each hemisphere.")
    parser.add_argument("prediction_network", help="Name of the trained network used for prediction.")
    parser.add_argument("--hemisphere", action="append", choices=["north", "south"], default=None,
                        help="Restrict the run to this hemisphere (repeatable; default: configured order).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose mode.")
    parser.add_argument("--config", default=None, help="Path to JSON config file.")
    return parser


def run_forecast_main(argv=None):
    """Forecast Runner entry point. Exits 1 if any hemisphere failed."""
    args   = build_forecast_parser().parse_args(argv)
    logger = setup_logging(log_level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        runner = ForecastRunner(args.prediction_network,
                                config      = load_config(args.config),
                                hemispheres = args.hemisphere,
                                verbose     = args.verbose)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    failures = runner.run()
    return 1 if failures else 0
