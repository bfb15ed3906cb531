"""
Command line entry point: apply a film preset to an image or a folder.

    film-emulate photo.jpg
    film-emulate photo.jpg out.jpg --preset my_look.yaml --set grain_alpha=0.3
    film-emulate ./photos ./filtered --pattern "*.png" --workers 4
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from film_emulation.config import DEFAULT_PRESET_NAME, load_preset
from film_emulation.pipeline import FilmProcessor

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="film-emulate",
        description="Apply a film-emulation look to images.")
    parser.add_argument("input", type=Path, help="Image file or directory")
    parser.add_argument("output", type=Path, nargs="?", default=None,
                        help="Output file or directory (default: next to input)")
    parser.add_argument("--preset", default=DEFAULT_PRESET_NAME,
                        help="Preset name or YAML file (default: %(default)s)")
    parser.add_argument("--set", dest="overrides", action="append", default=[],
                        metavar="KEY=VALUE", help="Override a preset constant")
    parser.add_argument("--seed", type=int, default=None,
                        help="Grain seed for reproducible output")
    parser.add_argument("--pattern", default="*.jpg",
                        help="Glob for directory input (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=None,
                        help="Parallel workers for directory input")
    parser.add_argument("--quality", type=int, default=95, help="JPEG quality")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        preset = load_preset(args.preset, args.overrides)
    except ValueError as e:
        log.error(str(e))
        return 2

    processor = FilmProcessor(preset, n_workers=args.workers)

    if args.input.is_dir():
        output_dir = args.output if args.output is not None else args.input / "filtered"
        batch = processor.process_batch(args.input, output_dir,
                                        pattern=args.pattern,
                                        seed=args.seed,
                                        quality=args.quality)
        batch.print_summary()
        return 0 if batch.failed == 0 else 1

    result = processor.process_image(args.input, args.output, seed=args.seed, quality=args.quality)
    if result.status != 'success':
        log.error(f"{args.input.name}: {result.error}")
        return 1
    log.info(f"Saved {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
