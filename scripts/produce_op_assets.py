#!/usr/bin/env python3
"""
produce_op_assets.py

Generate operational forecast outputs (geotiff, png, mp4, metric plots) from
an IceNet prediction netCDF file into 'results/forecasts/<forecast name w/hemi>'.

  python scripts/produce_op_assets.py fc.2024-05-21_north 70,155,145,240
  python scripts/produce_op_assets.py -h
"""
import sys
from sea_ice_ops_cli import produce_assets_main

if __name__ == "__main__":
    sys.exit(produce_assets_main())
