"""
CLI entry points for tiling a card across print sheets.
"""

# Standard Library
import argparse
import json
import pathlib
import sys
import time

# local repo modules
import card_tiler as ct
import card_tiler.config
import card_tiler.errors
import card_tiler.optimize
import card_tiler.session
import card_tiler.synthesize


TilingSession = ct.session.TilingSession
LayoutResult = ct.config.LayoutResult
SynthesizedDocument = ct.config.SynthesizedDocument
CardTilerError = ct.errors.CardTilerError

PAPER_SIZES = ct.config.PAPER_SIZES
DEFAULT_PAPER = ct.config.DEFAULT_PAPER
DEFAULT_CARD_WIDTH = ct.config.DEFAULT_CARD_WIDTH
DEFAULT_CARD_HEIGHT = ct.config.DEFAULT_CARD_HEIGHT
DEFAULT_EXPORT_MARGIN = ct.config.DEFAULT_EXPORT_MARGIN
DEFAULT_WORKERS = ct.config.DEFAULT_WORKERS


#============================================
def build_session(args: argparse.Namespace) -> TilingSession:
	"""
	Build a tiling session from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		TilingSession.
	"""
	session = TilingSession(
		front=args.front,
		back=args.back,
		paper=args.paper,
		paper_width=args.paper_width,
		paper_height=args.paper_height,
		card_width=args.card_width,
		card_height=args.card_height,
		margin=args.margin,
		count=args.count,
		horizontal_only=args.horizontal_only,
		vertical_only=args.vertical_only,
		auto_rotate=args.auto_rotate,
		draw_outlines=args.draw_outlines,
	)
	return session


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Tile a card image across print sheets as a PDF.")
	parser.add_argument("front", help="Front image path or URL.")
	parser.add_argument("-b", "--back", dest="back", default=None, help="Back image path or URL.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default="cards.pdf", help="Output PDF path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")

	sheet_group = parser.add_argument_group("Sheet")
	sheet_group.add_argument(
		"-s", "--paper", dest="paper", type=str.upper, choices=sorted(PAPER_SIZES), default=DEFAULT_PAPER,
		help="Paper preset.",
	)
	sheet_group.add_argument("--paper-width", dest="paper_width", type=float, default=None, help="Custom paper width in mm.")
	sheet_group.add_argument("--paper-height", dest="paper_height", type=float, default=None, help="Custom paper height in mm.")
	sheet_group.add_argument("-M", "--margin", dest="margin", type=float, default=DEFAULT_EXPORT_MARGIN, help="Sheet margin in mm.")

	card_group = parser.add_argument_group("Card")
	card_group.add_argument("-W", "--card-width", dest="card_width", type=float, default=DEFAULT_CARD_WIDTH, help="Card width in mm.")
	card_group.add_argument("-H", "--card-height", dest="card_height", type=float, default=DEFAULT_CARD_HEIGHT, help="Card height in mm.")
	card_group.add_argument("-n", "--count", dest="count", type=int, default=0, help="Number of cards needed (0 = one sheet).")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("--horizontal-only", dest="horizontal_only", action="store_true", help="Never rotate cards.")
	behavior_group.add_argument("--vertical-only", dest="vertical_only", action="store_true", help="Rotate every card.")
	behavior_group.add_argument("-r", "--auto-rotate", dest="auto_rotate", action="store_true", help="Mix orientations to fit more cards.")
	behavior_group.add_argument("-R", "--no-auto-rotate", dest="auto_rotate", action="store_false", help="Keep cards upright.")
	behavior_group.add_argument("-d", "--draw-outlines", dest="draw_outlines", action="store_true", help="Draw cut outlines.")
	behavior_group.add_argument("-D", "--no-draw-outlines", dest="draw_outlines", action="store_false", help="Disable cut outlines.")
	behavior_group.add_argument("-w", "--workers", dest="workers", type=int, default=DEFAULT_WORKERS, help="Concurrent rasterizations.")
	behavior_group.add_argument(
		"--layout-only",
		dest="layout_only",
		action="store_true",
		help="Print the layout and stop before writing the PDF.",
	)

	parser.set_defaults(
		auto_rotate=True,
		draw_outlines=False,
		horizontal_only=False,
		vertical_only=False,
		layout_only=False,
	)

	args = parser.parse_args(argv)
	if (args.paper_width is None) != (args.paper_height is None):
		parser.error("--paper-width and --paper-height must be given together")
	return args


#============================================
def print_layout(layout: LayoutResult) -> None:
	"""
	Print a short summary of a layout.

	Args:
		layout: Layout result.
	"""
	split = layout.split
	print(f"Cards per sheet: {layout.fitted_count}")
	print(
		f"Column split: {split.strategy} "
		f"(upright columns={split.columns_a} x {split.rows_a} rows, "
		f"rotated columns={split.columns_b} x {split.rows_b} rows)"
	)
	rotated = sum(1 for placement in layout.placements if placement.rotation != 0)
	print(f"Rotated cards: {rotated}")


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	session: TilingSession,
	document: SynthesizedDocument,
	output_path: pathlib.Path,
) -> None:
	"""
	Write a manifest JSON file.

	Args:
		manifest_path: Output path.
		session: Session that produced the document.
		document: Synthesized document.
		output_path: PDF path.
	"""
	sheet = session.sheet
	layout = session.layout
	data = {
		"output": str(output_path),
		"front": session.front,
		"back": session.back,
		"target_total": session.target_total(),
		"slots_per_page": document.slots_per_page,
		"pages_per_face": document.pages_per_face,
		"pages": len(document.pages),
		"image_resources": document.image_resources,
		"layout": {
			"paper_width_mm": sheet.width,
			"paper_height_mm": sheet.height,
			"card_width_mm": session.card_width,
			"card_height_mm": session.card_height,
			"margin_mm": document.margin,
			"strategy": layout.split.strategy,
			"columns_upright": layout.split.columns_a,
			"columns_rotated": layout.split.columns_b,
			"fitted_count": layout.fitted_count,
		},
		"placements": [
			{
				"index": placement.index,
				"x_mm": placement.x,
				"y_mm": placement.y,
				"width_mm": placement.width,
				"height_mm": placement.height,
				"rotation": placement.rotation,
				"row": placement.row,
				"col": placement.col,
			}
			for placement in layout.placements
		],
	}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)


#============================================
def run_pipeline(args: argparse.Namespace) -> None:
	"""
	Run layout, then synthesis, then write the PDF and manifest.

	Args:
		args: Parsed argparse namespace.
	"""
	session = build_session(args)
	sheet = session.sheet
	print("Card tiling pipeline")
	print(f"Front: {session.front}")
	if session.back:
		print(f"Back: {session.back}")
	print(f"Sheet: {sheet.width:g} x {sheet.height:g} mm, margin {session.margin:g} mm")
	print(f"Card: {session.card_width:g} x {session.card_height:g} mm")

	start_time = time.perf_counter()
	layout = session.optimize()
	print_layout(layout)
	for message in ct.optimize.pattern_violations(layout, session.layout_request()):
		print(f"Layout warning: {message}")
	layout_end = time.perf_counter()
	if args.layout_only:
		print("Stopping before writing the PDF.")
		return

	output_path = pathlib.Path(args.output_path)
	print(f"Output PDF: {output_path}")
	document = session.export(max_workers=args.workers, verbose=True)
	output_path.write_bytes(document.pdf_bytes)
	export_end = time.perf_counter()
	print(f"Cards requested: {session.target_total()}")
	print(f"Pages per face: {document.pages_per_face}")
	print(f"Pages written: {len(document.pages)}")
	print(f"Slot images: {document.image_resources}")
	if session.front_asset is not None and session.front_asset.is_opaque_document:
		print("Front is a PDF document: drawn as placeholders.")
	if session.back_asset is not None and session.back_asset.is_opaque_document:
		print("Back is a PDF document: drawn as placeholders.")

	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{output_path}.json"
	write_manifest(pathlib.Path(manifest_path), session, document, output_path)
	print(
		"Timing: layout={:.2f}s export={:.2f}s".format(
			layout_end - start_time,
			export_end - layout_end,
		)
	)
	print(f"Manifest written: {manifest_path}")


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.

	Returns:
		Process exit status.
	"""
	args = parse_args(argv)
	try:
		run_pipeline(args)
	except CardTilerError as error:
		print(f"Error: {error}", file=sys.stderr)
		return 1
	return 0
