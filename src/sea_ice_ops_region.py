from typing import NamedTuple, Optional, Union

from sea_ice_ops_errors import ConfigurationError

__all__ = ["PixelBounds", "GeoBounds", "parse_region", "GEO_MARKER"]

GEO_MARKER = "l"


class PixelBounds(NamedTuple):
    """Region clip in array index space."""
    x_min : int
    y_min : int
    x_max : int
    y_max : int

    def to_cli_args(self):
        return ["-r", f"{self.x_min},{self.y_min},{self.x_max},{self.y_max}"]


class GeoBounds(NamedTuple):
    """
    Region clip in geographic coordinates.

    The command line lists these as ``lon_min,lat_min,lon_max,lat_max`` and the
    plotting tools expect the same order back. `text` keeps the values as typed
    and is forwarded unchanged when present.
    """
    lat_min : float
    lon_min : float
    lat_max : float
    lon_max : float
    text    : Optional[str] = None

    def to_cli_args(self):
        if self.text is not None:
            return [f"-z={self.text}"]
        vals = ",".join(_fmt(v) for v in (self.lon_min, self.lat_min, self.lon_max, self.lat_max))
        return [f"-z={vals}"]


def _fmt(val):
    return str(int(val)) if float(val).is_integer() else repr(float(val))


def parse_region(region: Optional[str]) -> Union[PixelBounds, GeoBounds, None]:
    """
    Parse a region string into `PixelBounds` or `GeoBounds`.

    ``70,155,145,240``   -> PixelBounds(x_min=70, y_min=155, x_max=145, y_max=240)
    ``l-100,55,-70,75``  -> GeoBounds(lat_min=55, lon_min=-100, lat_max=75, lon_max=-70)

    Empty or None input means no clipping.
    """
    if region is None or not region.strip():
        return None
    region = region.strip()
    is_geo = region.startswith(GEO_MARKER)
    body   = region[len(GEO_MARKER):] if is_geo else region
    parts  = [p.strip() for p in body.split(",")]
    if len(parts) != 4:
        raise ConfigurationError(f"region '{region}' must have four comma-separated values")
    try:
        if is_geo:
            lon_min, lat_min, lon_max, lat_max = (float(p) for p in parts)
            return GeoBounds(lat_min=lat_min, lon_min=lon_min, lat_max=lat_max, lon_max=lon_max,
                             text=",".join(parts))
        x_min, y_min, x_max, y_max = (int(p) for p in parts)
    except ValueError as e:
        kind = "floats" if is_geo else "integers"
        raise ConfigurationError(f"region '{region}' values must be {kind}") from e
    return PixelBounds(x_min=x_min, y_min=y_min, x_max=x_max, y_max=y_max)
