#!/usr/bin/env python3
"""
run_era5_forecast.py

Daily operational loop: for each hemisphere refresh ERA5 and OSI-SAF SIC for the
year to date, predict from the latest observed day with PREDICTION_NETWORK, then
produce the operational assets for that forecast.

Expects TRAIN_DATA_NAME (and optionally DATA_ARGS_ERA5) in the environment.

  python scripts/run_era5_forecast.py PREDICTION_NETWORK
"""
import sys
from sea_ice_ops_cli import run_forecast_main

if __name__ == "__main__":
    sys.exit(run_forecast_main())
