"""
IceNet operational forecast orchestration

Sequences the external IceNet command line tools that turn a trained network
into daily published forecast products.

Submodules
----------
sea_ice_ops_config       : immutable run configuration and JSON config loading.
sea_ice_ops_region       : pixel and lat/lon region bounds.
sea_ice_ops_tasks        : external tool invocation with retries, timeouts and output checks.
sea_ice_ops_observations : forecast date manifest, date extraction, OSI-SAF metrics gate.
sea_ice_ops_assets       : per-date geotiff/movie/still/metric production.
sea_ice_ops_toolbox      : the Asset Producer, composed from the above.
sea_ice_ops_runner       : the daily Forecast Runner across hemispheres.
sea_ice_ops_cli          : command line entry points.
"""
__version__ = '0.1.0'
