"""Utility functions for marker clustering.

Provides coordinate validation and projection of complaint coordinates
into Web-Mercator pixel space.
"""

import geopandas as gpd
import numpy as np
import pandas as pd

from civicmap.geography.projection import meters_to_pixels

WEB_MERCATOR = "EPSG:3857"


def validate_coordinates(
    df: pd.DataFrame,
    x_col: str = "lng",
    y_col: str = "lat"
) -> pd.DataFrame:
    """Validate and clean coordinate data.

    Args:
        df: DataFrame with coordinate columns.
        x_col: Name of longitude column.
        y_col: Name of latitude column.

    Returns:
        Cleaned DataFrame with invalid coordinates removed. The original
        index is kept so labels can be traced back to input rows.
    """
    df = df.dropna(subset=[x_col, y_col])
    return df[
        (df[x_col] >= -180) & (df[x_col] <= 180) &
        (df[y_col] >= -90) & (df[y_col] <= 90)
    ].copy()


def to_pixel_space(
    df: pd.DataFrame,
    zoom: float,
    x_col: str = "lng",
    y_col: str = "lat",
    crs_from: str = "EPSG:4326",
) -> np.ndarray:
    """Project coordinates to world pixel coordinates at a zoom level.

    Args:
        df: DataFrame with coordinate columns.
        zoom: Map zoom level.
        x_col: Name of longitude/x column.
        y_col: Name of latitude/y column.
        crs_from: Source CRS (default: "EPSG:4326").

    Returns:
        Array of shape (n, 2) with pixel x, y.
    """
    if len(df) == 0:
        return np.empty((0, 2))
    gdf = gpd.GeoDataFrame(
        geometry=gpd.points_from_xy(df[x_col], df[y_col]),
        crs=crs_from,
    ).to_crs(WEB_MERCATOR)
    xy_m = np.column_stack([gdf.geometry.x, gdf.geometry.y])
    return meters_to_pixels(xy_m, zoom)
