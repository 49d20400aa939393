#!/usr/bin/env python3
"""
Espinho Coastal Flood Example.

Maps the area flooded by a combined tide + storm surge + sea level rise
scenario on the Portuguese coast, keeping only low ground that is connected
to the sea.

Pipeline:
1. Convert the water level scenario (hydrographic zero) to a DEM threshold
2. Load and clip the DEM mosaic to the study area
3. Replace NoData with a high wall
4. Compute the border-connected flood extent
5. Save the mask as GeoTIFF (1 = flooded, 0 = dry) and optionally a PNG map

Usage:
    # Default Espinho scenario
    python examples/espinho_flood.py --dem data/dem/portugal_coast_wgs84.vrt

    # Custom water level and 8-connected flooding
    python examples/espinho_flood.py --tide 3.5 --surge 0.9 --slr 0.5 --connectivity 8

    # Also render a map
    python examples/espinho_flood.py --plot

    # Keep the reconstructed water surface for inspection
    python examples/espinho_flood.py --surface-output examples/output/espinho_surface.tif
"""

import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src import config
from src.flood.errors import FloodError
from src.flood.simulation import run_flood_simulation
from src.flood.visualization import plot_flood_extent
from src.flood.water_level import WaterLevelScenario
from src.utils.helpers import setup_logging

logger = setup_logging("src", level=config.DEFAULT_LOG_LEVEL)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Connected coastal flood mapping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python examples/espinho_flood.py --dem data/dem/portugal_coast_wgs84.vrt
  python examples/espinho_flood.py --tide 3.5 --surge 0.9 --slr 0.5 --plot
        """,
    )
    parser.add_argument(
        "--dem",
        type=Path,
        default=config.DEFAULT_DEM_PATH,
        help=f"DEM raster or VRT mosaic (default: {config.DEFAULT_DEM_PATH})",
    )
    parser.add_argument("--tide", type=float, default=config.DEFAULT_TIDE_ZH,
                        help="Tide level above hydrographic zero, m")
    parser.add_argument("--surge", type=float, default=config.DEFAULT_SURGE,
                        help="Storm surge, m")
    parser.add_argument("--slr", type=float, default=config.DEFAULT_SLR,
                        help="Sea level rise, m")
    parser.add_argument("--datum-offset", type=float, default=config.DATUM_OFFSET,
                        help="Height of the DEM datum above hydrographic zero, m")
    parser.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        metavar=("MIN_LON", "MIN_LAT", "MAX_LON", "MAX_LAT"),
        default=list(config.ESPINHO_BOUNDS),
        help="Study area in EPSG:4326 (default: Espinho)",
    )
    parser.add_argument("--connectivity", type=int, choices=(4, 8),
                        default=config.DEFAULT_CONNECTIVITY,
                        help="Neighbourhood for hydraulic connectivity")
    parser.add_argument(
        "--output",
        type=Path,
        default=config.OUTPUT_DIR / "espinho_flood_result.tif",
        help="Output GeoTIFF path",
    )
    parser.add_argument("--plot", action="store_true",
                        help="Also save a PNG map next to the GeoTIFF")
    parser.add_argument("--surface-output", type=Path, default=None,
                        help="Also save the reconstructed water surface as float32 GeoTIFF")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    scenario = WaterLevelScenario(
        tide=args.tide,
        surge=args.surge,
        slr=args.slr,
        datum_offset=args.datum_offset,
        name="espinho",
    )

    if not args.dem.exists():
        logger.error(f"Error: DEM file '{args.dem}' not found.")
        return 1

    try:
        result = run_flood_simulation(
            args.dem,
            scenario,
            tuple(args.bounds),
            connectivity=args.connectivity,
            output_path=args.output,
            surface_path=args.surface_output,
        )
    except (FloodError, ValueError) as e:
        logger.error(f"Simulation failed: {e}")
        return 1

    if args.plot:
        plot_flood_extent(
            result,
            output_path=args.output.with_suffix(".png"),
            title=f"Flood Extent (TWL {scenario.total_water_level:.2f} m ZH)",
        )

    logger.info(f"Simulation complete. Result saved to: {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
