"""
Connected flood mapping for coastal DEMs.

Implements the "bathtub with connectivity" fill: a cell is flooded only when
it lies below the water level AND is hydraulically connected to the grid
border (the open ocean). Isolated low-lying depressions stay dry.

The algorithm is a morphological reconstruction by erosion:

1. A seed (marker) grid is built from the DEM. Border cells keep their
   elevation, interior cells start as a high wall, and cells at or above the
   flood threshold are pinned to their own elevation.
2. The seed is eroded down towards the DEM (the floor), but only along
   connected paths starting from cells whose seed is already low.
3. The reconstructed surface is compared against the threshold.

Neighbourhood
-------------
Reconstruction uses 4-connectivity (edge neighbours) by default. Passing
``connectivity=8`` also lets water through diagonal pinch points, which
floods more cells where two land cells touch only at a corner.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from numba import jit
from tqdm import tqdm

from src.config import DEFAULT_CONNECTIVITY, NODATA_WALL
from src.flood.errors import (
    EmptyGridError,
    FloodCancelledError,
    InvalidGridError,
    NonFiniteValueError,
)

logger = logging.getLogger(__name__)

# (row_offset, col_offset) of neighbouring cells
NEIGHBORS_4 = ((-1, 0), (1, 0), (0, -1), (0, 1))
NEIGHBORS_8 = NEIGHBORS_4 + ((-1, -1), (-1, 1), (1, -1), (1, 1))

CONNECTIVITY_OFFSETS = {4: NEIGHBORS_4, 8: NEIGHBORS_8}

# Queue pops between cancel_event checks
CANCEL_CHECK_INTERVAL = 65536


@dataclass
class FloodResult:
    """Output of a single connected flood computation."""

    mask: np.ndarray
    """Boolean flood mask, True = flooded. Same shape as the DEM."""

    threshold: float
    """Water surface elevation used for the run."""

    connectivity: int
    """Neighbourhood used during reconstruction (4 or 8)."""

    surface: Optional[np.ndarray] = None
    """Reconstructed surface, only kept when requested (diagnostics)."""

    @property
    def flooded_pixels(self) -> int:
        return int(np.count_nonzero(self.mask))


def _neighbor_offsets(connectivity: int):
    if connectivity not in CONNECTIVITY_OFFSETS:
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity!r}")
    return CONNECTIVITY_OFFSETS[connectivity]


def validate_elevation_grid(elevation) -> np.ndarray:
    """
    Check that an elevation grid can be flooded and return it as float64.

    Parameters
    ----------
    elevation : array-like
        2-D elevation grid with NoData already replaced by a wall value.

    Returns
    -------
    np.ndarray
        The grid as a 2-D float64 array (a view when no conversion is needed).

    Raises
    ------
    InvalidGridError
        Jagged rows, non-numeric data, wrong number of dimensions or an
        empty axis.
    NonFiniteValueError
        Any NaN or infinite cell.
    """
    try:
        grid = np.asarray(elevation, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidGridError(
            f"Elevation grid must be a rectangular numeric array: {e}"
        ) from e

    if grid.ndim != 2:
        raise InvalidGridError(
            f"Elevation grid must be 2D, got {grid.ndim}D with shape {grid.shape}"
        )

    height, width = grid.shape
    if height == 0 or width == 0:
        raise InvalidGridError(
            f"Elevation grid must have at least one row and one column, "
            f"got height={height}, width={width}"
        )

    finite = np.isfinite(grid)
    if not finite.all():
        bad = int(grid.size - np.count_nonzero(finite))
        raise NonFiniteValueError(
            f"Elevation grid contains {bad} NaN/infinite cells; "
            f"replace NoData with a wall value before flooding"
        )

    return grid


def _validate_threshold(threshold) -> float:
    try:
        value = float(threshold)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Flood threshold must be a number, got {threshold!r}") from e
    if not np.isfinite(value):
        raise NonFiniteValueError(f"Flood threshold must be finite, got {value}")
    return value


def _valid_cells(elevation, valid_mask=None, wall_value=None) -> np.ndarray:
    if valid_mask is not None:
        valid = np.asarray(valid_mask, dtype=bool)
        if valid.shape != elevation.shape:
            raise InvalidGridError(
                f"valid_mask shape {valid.shape} does not match "
                f"elevation shape {elevation.shape}"
            )
        return valid
    if wall_value is not None:
        return elevation < wall_value
    return np.ones(elevation.shape, dtype=bool)


def build_seed(
    elevation,
    threshold: float,
    valid_mask: Optional[np.ndarray] = None,
    wall_value: Optional[float] = None,
) -> np.ndarray:
    """
    Build the reconstruction marker for a flood threshold.

    Border cells take their DEM elevation (the ocean anchor). Strict interior
    cells take the maximum valid elevation, or the threshold if that is
    higher, so they can only be flooded by erosion from the border. Cells at
    or above the threshold are pinned to their own elevation.

    Parameters
    ----------
    elevation : array-like
        Sanitized 2-D elevation grid.
    threshold : float
        Water surface elevation.
    valid_mask : np.ndarray (bool), optional
        True where the elevation is real data. Takes precedence over
        ``wall_value``.
    wall_value : float, optional
        NoData replacement value. Cells at or above it are ignored when
        computing the interior maximum.

    Returns
    -------
    np.ndarray
        Seed grid with ``seed >= elevation`` everywhere.

    Raises
    ------
    EmptyGridError
        No valid cell exists to take the maximum from.
    """
    elevation = validate_elevation_grid(elevation)
    threshold = _validate_threshold(threshold)

    valid = _valid_cells(elevation, valid_mask, wall_value)
    if not valid.any():
        raise EmptyGridError(
            f"No valid elevation data in bounding box (grid shape {elevation.shape})"
        )

    max_val = float(elevation[valid].max())

    seed = elevation.copy()
    # No-op for grids narrower than 3 cells: everything is border
    seed[1:-1, 1:-1] = max(max_val, threshold)

    # Land at or above the water level can never flood
    dry = elevation >= threshold
    seed[dry] = elevation[dry]

    return seed


@jit(nopython=True, cache=True)
def _heap_sift_up(heap, pos, keys, i):
    """Move heap[i] towards the root until its parent is not larger."""
    node = heap[i]
    key = keys[node]
    while i > 0:
        parent = (i - 1) >> 1
        parent_node = heap[parent]
        if keys[parent_node] <= key:
            break
        heap[i] = parent_node
        pos[parent_node] = i
        i = parent
    heap[i] = node
    pos[node] = i


@jit(nopython=True, cache=True)
def _heap_sift_down(heap, pos, keys, i, size):
    """Move heap[i] towards the leaves until no child is smaller."""
    node = heap[i]
    key = keys[node]
    while True:
        child = 2 * i + 1
        if child >= size:
            break
        right = child + 1
        if right < size and keys[heap[right]] < keys[heap[child]]:
            child = right
        child_node = heap[child]
        if keys[child_node] >= key:
            break
        heap[i] = child_node
        pos[child_node] = i
        i = child
    heap[i] = node
    pos[node] = i


@jit(nopython=True, nogil=True, cache=True)
def _erode_from_heap(surface, floor, rows, cols, offsets, heap, pos, size, max_pops):
    """
    Pop up to max_pops cells from the heap and lower their neighbours.

    heap holds flat cell indices ordered by surface value, pos maps a cell to
    its heap slot (-1 when not queued). surface is updated in place and the
    heap state survives between calls, so the caller can resume.

    Returns (remaining heap size, cells popped).
    """
    n_offsets = offsets.shape[0]
    pops = 0
    while size > 0 and pops < max_pops:
        idx = heap[0]
        pos[idx] = -1
        size -= 1
        if size > 0:
            heap[0] = heap[size]
            _heap_sift_down(heap, pos, surface, 0, size)
        pops += 1

        value = surface[idx]
        r = idx // cols
        c = idx - r * cols
        for k in range(n_offsets):
            nr = r + offsets[k, 0]
            nc = c + offsets[k, 1]
            if nr < 0 or nr >= rows or nc < 0 or nc >= cols:
                continue
            nidx = nr * cols + nc
            candidate = value if value > floor[nidx] else floor[nidx]
            if candidate < surface[nidx]:
                surface[nidx] = candidate
                if pos[nidx] < 0:
                    heap[size] = nidx
                    size += 1
                    _heap_sift_up(heap, pos, surface, size - 1)
                else:
                    _heap_sift_up(heap, pos, surface, pos[nidx])

    return size, pops


def reconstruct_by_erosion(
    marker,
    mask,
    connectivity: int = DEFAULT_CONNECTIVITY,
    cancel_event=None,
) -> np.ndarray:
    """
    Greyscale morphological reconstruction by erosion.

    Erodes ``marker`` down towards ``mask`` through connected cells only. The
    result is the greatest surface between ``mask`` and ``marker`` that is
    stable under ``R = max(erode(R), mask)``.

    Uses a priority-queue region growing (same scheme as Barnes et al. 2014
    priority-flood): every cell whose marker lies below the marker maximum
    is a source, the lowest pending cell is popped and offers
    ``max(value, mask[neighbour])`` to each neighbour. Values popped from the
    queue never decrease, so each cell is settled once and the run is
    O(N log N). The queue is an indexed binary heap over flat arrays with
    decrease-key, so it never holds more than one entry per cell.

    Parameters
    ----------
    marker : array-like
        Seed surface, must satisfy ``marker >= mask`` everywhere.
    mask : array-like
        Floor surface (the DEM).
    connectivity : int, default 4
        4 (edge neighbours) or 8 (edge and corner neighbours).
    cancel_event : threading.Event, optional
        Checked before every block of ``CANCEL_CHECK_INTERVAL`` queue pops;
        when set the run stops with FloodCancelledError.

    Returns
    -------
    np.ndarray
        Reconstructed surface (float64). Inputs are not modified.
    """
    offsets = _neighbor_offsets(connectivity)

    marker = np.asarray(marker, dtype=np.float64)
    mask = np.asarray(mask, dtype=np.float64)

    if marker.shape != mask.shape:
        raise ValueError(
            f"Marker shape {marker.shape} does not match mask shape {mask.shape}"
        )
    if marker.ndim != 2:
        raise ValueError(f"Reconstruction needs 2D grids, got shape {marker.shape}")
    if not (np.isfinite(marker).all() and np.isfinite(mask).all()):
        raise NonFiniteValueError("Marker and mask must not contain NaN/infinite values")
    if np.any(marker < mask):
        raise ValueError(
            "Marker must be greater than or equal to mask everywhere "
            "for reconstruction by erosion"
        )

    rows, cols = mask.shape
    if marker.size == 0:
        return marker.copy()

    # Flat C-ordered working copies for the JIT kernel
    surface = marker.flatten()
    floor = mask.flatten()
    offsets_arr = np.array(offsets, dtype=np.int64)

    # Cells sitting at the marker maximum cannot lower any neighbour.
    # Sources sorted by value already form a valid binary min-heap.
    top = surface.max()
    sources = np.flatnonzero(surface < top)
    sources = sources[np.argsort(surface[sources], kind="stable")]

    heap = np.empty(surface.size, dtype=np.int64)
    pos = np.full(surface.size, -1, dtype=np.int64)
    size = sources.size
    heap[:size] = sources
    pos[sources] = np.arange(size, dtype=np.int64)
    logger.debug(f"Reconstruction seeded with {size:,} of {surface.size:,} cells")

    max_pops = surface.size if cancel_event is None else CANCEL_CHECK_INTERVAL
    settled = 0
    while size > 0:
        if cancel_event is not None and cancel_event.is_set():
            raise FloodCancelledError(
                f"Reconstruction cancelled after settling {settled:,} cells"
            )
        size, pops = _erode_from_heap(
            surface, floor, rows, cols, offsets_arr, heap, pos, size, max_pops
        )
        settled += pops

    logger.debug(f"Reconstruction settled {settled:,} cells")

    return surface.reshape(rows, cols)


def threshold_surface(surface: np.ndarray, threshold: float) -> np.ndarray:
    """Flood mask from a reconstructed surface: True where below the threshold."""
    return np.asarray(surface) < threshold


def naive_flood_mask(elevation, threshold: float) -> np.ndarray:
    """Plain bathtub fill: every cell below the threshold, connected or not."""
    return validate_elevation_grid(elevation) < _validate_threshold(threshold)


def compute_connected_flood(
    elevation,
    threshold: float,
    connectivity: int = DEFAULT_CONNECTIVITY,
    valid_mask: Optional[np.ndarray] = None,
    wall_value: Optional[float] = NODATA_WALL,
    keep_surface: bool = False,
    cancel_event=None,
) -> FloodResult:
    """
    Compute the border-connected flood extent for one water level.

    Args:
        elevation: Sanitized 2D DEM (NoData already replaced by ``wall_value``)
        threshold: Water surface elevation in the DEM's vertical datum
        connectivity: 4 or 8 neighbour reconstruction (default: 4)
        valid_mask: Optional boolean mask of real data cells
        wall_value: NoData wall value, excluded from the interior maximum
        keep_surface: Keep the reconstructed surface on the result
        cancel_event: Optional threading.Event for cooperative cancellation

    Returns:
        FloodResult with the boolean mask (True = flooded)

    Raises:
        InvalidGridError: Grid is not a non-empty rectangular 2D array
        EmptyGridError: No valid elevation values
        NonFiniteValueError: NaN/inf in the grid or threshold
        FloodCancelledError: cancel_event was set during reconstruction
    """
    elevation = validate_elevation_grid(elevation)
    threshold = _validate_threshold(threshold)
    _neighbor_offsets(connectivity)

    height, width = elevation.shape
    logger.info(
        f"Calculating hydrological connectivity on {height}x{width} grid "
        f"(threshold {threshold:.2f}, {connectivity}-connected)"
    )

    seed = build_seed(elevation, threshold, valid_mask=valid_mask, wall_value=wall_value)
    surface = reconstruct_by_erosion(
        seed, elevation, connectivity=connectivity, cancel_event=cancel_event
    )
    mask = threshold_surface(surface, threshold)

    logger.info(f"Flooded pixels: {int(np.count_nonzero(mask)):,}")

    return FloodResult(
        mask=mask,
        threshold=threshold,
        connectivity=connectivity,
        surface=surface if keep_surface else None,
    )


class ConnectedFloodEngine:
    """
    Reusable connected flood calculator.

    Holds run options only; every call builds its own seed and surface, so a
    single engine (and a single DEM array) can serve concurrent scenarios.

    Examples:
        >>> dem = np.full((5, 5), 10.0)
        >>> dem[1:4, 1:4] = 8.0
        >>> dem[2, 2] = 2.0
        >>> engine = ConnectedFloodEngine()
        >>> bool(engine.run(dem, 5.0).mask[2, 2])
        False
    """

    def __init__(
        self,
        connectivity: int = DEFAULT_CONNECTIVITY,
        wall_value: Optional[float] = NODATA_WALL,
        keep_surface: bool = False,
    ):
        _neighbor_offsets(connectivity)
        self.connectivity = connectivity
        self.wall_value = wall_value
        self.keep_surface = keep_surface

    def run(self, elevation, threshold: float, valid_mask=None, cancel_event=None) -> FloodResult:
        """Flood the DEM at one water level."""
        return compute_connected_flood(
            elevation,
            threshold,
            connectivity=self.connectivity,
            valid_mask=valid_mask,
            wall_value=self.wall_value,
            keep_surface=self.keep_surface,
            cancel_event=cancel_event,
        )

    def run_many(
        self,
        elevation,
        thresholds: Sequence[float],
        valid_mask=None,
        max_workers: Optional[int] = None,
        cancel_event=None,
    ) -> List[FloodResult]:
        """
        Flood the same DEM at several water levels.

        The DEM is validated once and shared read-only between worker threads.
        Any failure is re-raised; no partial list is returned.

        Args:
            elevation: Sanitized 2D DEM
            thresholds: Water levels to evaluate
            valid_mask: Optional boolean mask of real data cells
            max_workers: Thread pool size (default: executor default)
            cancel_event: Optional threading.Event shared by all runs

        Returns:
            List of FloodResult in the same order as ``thresholds``
        """
        elevation = validate_elevation_grid(elevation)
        thresholds = [_validate_threshold(t) for t in thresholds]
        results: List[Optional[FloodResult]] = [None] * len(thresholds)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_map = {
                executor.submit(self.run, elevation, t, valid_mask, cancel_event): i
                for i, t in enumerate(thresholds)
            }
            with tqdm(total=len(thresholds), desc="Flooding scenarios") as pbar:
                for future in as_completed(future_map):
                    i = future_map[future]
                    results[i] = future.result()
                    pbar.update(1)

        logger.info(f"Computed {len(results)} flood scenarios")
        return results
