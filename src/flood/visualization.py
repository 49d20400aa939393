"""
Static map of a flood extent.

Renders flooded cells in blue over a transparent background on lon/lat axes.
"""

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import ListedColormap
from rasterio.transform import array_bounds

from src.config import OUTPUT_DIR

logger = logging.getLogger(__name__)


def plot_flood_extent(
    result_or_mask, transform=None, output_path=None, title="Flood Extent", dpi=150
):
    """
    Save a heatmap of a flood mask.

    Args:
        result_or_mask: 2D boolean flood mask (True = flooded), or any result
            with a ``mask`` attribute (FloodResult, FloodSimulationResult)
        transform: Affine transform of the mask grid, used for axis extents.
            Defaults to the result's own ``transform`` when it has one.
        output_path: Image path (format from the suffix, e.g. .png);
            defaults to OUTPUT_DIR/flood_extent.png
        title: Plot title
        dpi: Output resolution

    Returns:
        Path: The saved image path
    """
    data = np.asarray(getattr(result_or_mask, "mask", result_or_mask))
    if transform is None:
        transform = getattr(result_or_mask, "transform", None)
    if transform is None:
        raise ValueError("A transform is needed to place the flood mask on map axes")
    if data.ndim != 2:
        raise ValueError(f"Flood mask must be 2D, got shape {data.shape}")

    height, width = data.shape
    west, south, east, north = array_bounds(height, width, transform)

    fig, ax = plt.subplots(figsize=(8, 6))
    try:
        cmap = ListedColormap([(0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 1.0, 1.0)])
        im = ax.imshow(
            data.astype(np.uint8),
            cmap=cmap,
            vmin=0,
            vmax=1,
            extent=(west, east, south, north),
            interpolation="nearest",
        )
        ax.set_title(title)
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
        cbar = fig.colorbar(im, ax=ax, ticks=[0, 1])
        cbar.set_label("Flooded")

        output_path = Path(output_path) if output_path is not None else OUTPUT_DIR / "flood_extent.png"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)

    logger.info(f"Saved flood map: {output_path}")
    return output_path
