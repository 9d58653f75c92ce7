"""
Command-line interface for picture-Sudoku booklet generation.

This module provides the main entry point that runs the complete pipeline:
workbook -> grid size and answers -> constraint slices -> .docx booklet.
"""

import argparse
import logging
import sys
from pathlib import Path

from .booklet import generate_batch, generate_puzzle
from .cache import ResourceCache, fetch_url
from .config import BatchPolicy, BookletConfig, GivenMode
from .errors import BookletError, ExternalCollaboratorError
from .grid import print_grid
from .sheets import Spreadsheet


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate picture-Sudoku booklets from a spreadsheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sudoku_booklet.cli --workbook puzzles.xlsx --out out --title "Mint Hulzo Coin"
  python -m sudoku_booklet.cli --workbook puzzles.xlsx --batch --column-offset 3 --template Template
  python -m sudoku_booklet.cli --workbook puzzles.xlsx --batch --template Template --template-origin 2 2
  python -m sudoku_booklet.cli --workbook puzzles.xlsx --given plain --may-contain
        """
    )

    parser.add_argument(
        "--workbook",
        required=True,
        help="Path to the .xlsx workbook holding the images and answers sheets"
    )

    parser.add_argument(
        "--out",
        default="out",
        help="Output directory for generated documents (default: out)"
    )

    parser.add_argument(
        "--sheet",
        default=None,
        help="Name of the images sheet (default: the active sheet)"
    )

    parser.add_argument(
        "--title",
        default="Sudoku",
        help="Document title in single-puzzle mode (default: Sudoku)"
    )

    parser.add_argument(
        "--row",
        type=int,
        default=1,
        help="Images row of the puzzle in single-puzzle mode (default: 1)"
    )

    parser.add_argument(
        "--column-offset",
        type=int,
        default=None,
        help="Columns before the first image cell (default: 0, or 3 with --batch)"
    )

    parser.add_argument(
        "--given",
        choices=[mode.value for mode in GivenMode],
        default=GivenMode.BOLD.value,
        help="Which answers cells appear in the puzzle: bold or plain (default: bold)"
    )

    parser.add_argument(
        "--may-contain",
        action="store_true",
        help='Title sections "may only contain" instead of "must not contain"'
    )

    parser.add_argument(
        "--image-size",
        type=int,
        default=None,
        help="Width and height of each inline image in points (default: 100)"
    )

    parser.add_argument(
        "--image-width",
        type=int,
        default=None,
        help="Inline image width in points; overrides --image-size"
    )

    parser.add_argument(
        "--image-height",
        type=int,
        default=None,
        help="Inline image height in points; overrides --image-size"
    )

    parser.add_argument(
        "--margins",
        type=int,
        nargs=2,
        metavar=("TOP", "BOTTOM"),
        default=(36, 18),
        help="Top and bottom page margins in points (default: 36 18)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Image download timeout in seconds (default: 30)"
    )

    parser.add_argument(
        "--batch",
        action="store_true",
        help="Generate one booklet per named row of the images sheet"
    )

    parser.add_argument(
        "--start-row",
        type=int,
        default=2,
        help="First row processed in batch mode (default: 2)"
    )

    parser.add_argument(
        "--name-column",
        type=int,
        default=1,
        help="Column holding each row's puzzle name in batch mode (default: 1)"
    )

    parser.add_argument(
        "--on-unnamed",
        choices=[policy.value for policy in BatchPolicy],
        default=BatchPolicy.SKIP.value,
        help="Skip rows without a name or stop the batch there (default: skip)"
    )

    parser.add_argument(
        "--template",
        default=None,
        help="Template sheet to copy and mark with the given cells"
    )

    parser.add_argument(
        "--template-origin",
        type=int,
        nargs=2,
        metavar=("ROW", "COL"),
        default=(1, 1),
        help="1-based cell of the grid's top-left corner in the template (default: 1 1)"
    )

    parser.add_argument(
        "--marker",
        default="X",
        help="Value written into given cells of the template copy (default: X)"
    )

    parser.add_argument(
        "--save-workbook",
        default=None,
        help="Where to save the workbook after template marking (default: overwrite input)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> BookletConfig:
    column_offset = args.column_offset
    if column_offset is None:
        column_offset = 3 if args.batch else 0
    image_size = 100 if args.image_size is None else args.image_size
    margin_top, margin_bottom = args.margins

    return BookletConfig.from_dict({
        "title": args.title,
        "images_sheet": args.sheet,
        "row": args.row,
        "column_offset": column_offset,
        "given_mode": args.given,
        "may_contain": args.may_contain,
        "image_width": image_size if args.image_width is None else args.image_width,
        "image_height": image_size if args.image_height is None else args.image_height,
        "margin_top": margin_top,
        "margin_bottom": margin_bottom,
        "fetch_timeout": args.timeout,
        "batch": args.batch,
        "start_row": args.start_row,
        "name_column": args.name_column,
        "batch_policy": args.on_unnamed,
        "template_sheet": args.template,
        "template_origin": args.template_origin,
        "marker": args.marker,
        "output_dir": args.out,
        "workbook_out": args.save_workbook,
    })


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Validate input file
    workbook_path = Path(args.workbook)
    if not workbook_path.exists():
        print(f"Error: Workbook '{workbook_path}' not found", file=sys.stderr)
        sys.exit(1)

    cache = ResourceCache(fetch=lambda locator: fetch_url(locator, timeout=config.fetch_timeout))

    try:
        print(f"Loading workbook: {workbook_path}")
        spreadsheet = Spreadsheet.open(workbook_path)
        print(f"[OK] Sheets: {', '.join(spreadsheet.sheet_names)}")

        if config.batch:
            print(f"Generating booklets from row {config.start_row} (unnamed rows: {config.batch_policy.value})...")
            results = generate_batch(spreadsheet, config, cache)
        else:
            print(f"Generating booklet '{config.title}' from row {config.row}...")
            results = [generate_puzzle(spreadsheet, config, cache)]

        for result in results:
            print(f"\n{result.title} ({result.grid_size}x{result.grid_size}):")
            print_grid(result.puzzle)
            print(f"  Saved: {result.document_path}")
            if result.template_copy:
                print(f"  Marked template copy: {result.template_copy}")

        print(f"\n[OK] Generated {len(results)} booklet(s), {len(cache)} image(s) fetched")

    except ExternalCollaboratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except BookletError as e:
        print(f"Error processing sudoku: {e}", file=sys.stderr)
        sys.exit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
