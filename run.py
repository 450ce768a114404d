#!/usr/bin/env python
"""
Answer-sheet normalization - Command Line Entry Point

Usage:
    python run.py normalize IMAGE [--output NAME] [--strategy STRATEGY]
    python run.py stitch SEGMENT [SEGMENT ...] [--output NAME] [--gutter PX]
    python run.py batch DIRECTORY [--strategy STRATEGY]

Examples:
    python run.py normalize photo.jpg                 # Corner-cluster layout
    python run.py normalize photo.jpg --strategy grid # Grid marker layout
    python run.py stitch left.jpg right.jpg           # Stitch two page segments
    python run.py batch uploads/                      # Normalize a whole folder
"""
import argparse
import sys

from sheetscan.config import settings
from sheetscan.core import SheetScanException, Strategy
from sheetscan.normalizer import NormalizerConfig
from sheetscan.services import NormalizationService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Answer-sheet geometric normalization"
    )
    parser.add_argument(
        "--output-dir",
        default=str(settings.OUTPUT_DIR),
        help=f"Directory for results (default: {settings.OUTPUT_DIR})"
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        default=settings.NORMALIZER_STRATEGY,
        help=f"Marker layout (default: {settings.NORMALIZER_STRATEGY})"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize = subparsers.add_parser("normalize", help="Normalize one photo")
    normalize.add_argument("image", help="Path to the photo")
    normalize.add_argument("--output", help="Output file name")

    stitch = subparsers.add_parser("stitch", help="Stitch page segments left to right")
    stitch.add_argument("segments", nargs="+", help="Segment photos in order")
    stitch.add_argument("--output", help="Output file name")
    stitch.add_argument(
        "--gutter",
        type=int,
        default=settings.STITCH_GUTTER,
        help=f"White gap between segments in px (default: {settings.STITCH_GUTTER})"
    )

    batch = subparsers.add_parser("batch", help="Normalize every image in a directory")
    batch.add_argument("directory", help="Directory of photos")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = NormalizerConfig.from_settings(settings, strategy=args.strategy)
    service = NormalizationService(output_dir=args.output_dir, config=config)

    print(f"""
╔══════════════════════════════════════════════════════════════╗
              Answer-Sheet Normalization
╠══════════════════════════════════════════════════════════════╣
    Command:  {args.command:<15}
    Strategy: {args.strategy:<15}
    Output:   {args.output_dir}
╚══════════════════════════════════════════════════════════════╝
    """)

    try:
        if args.command == "normalize":
            name = service.preprocess_file(args.image, args.output)
            print(f"Saved {name}")
        elif args.command == "stitch":
            name = service.stitch_files(args.segments, args.output, args.gutter)
            print(f"Saved {name}")
        else:
            results = service.process_directory(args.directory)
            for r in results:
                status = r["output"] if r["success"] else f"FAILED ({r['error_code']}): {r['error']}"
                print(f"  {r['image_name']}: {status}")
            if any(not r["success"] for r in results):
                return 1
    except SheetScanException as e:
        print(f"Error [{e.error_code}]: {e.detail}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
