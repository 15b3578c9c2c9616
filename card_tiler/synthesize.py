"""
Document synthesis: repeat a one-sheet pattern across pages and write a PDF.
"""

# Standard Library
import concurrent.futures
import io
import math
import threading

# PIP3 modules
import pypdf
import reportlab.lib.utils
import reportlab.pdfgen.canvas

# local repo modules
import card_tiler as ct
import card_tiler.config
import card_tiler.errors
import card_tiler.rasterize


Placement = ct.config.Placement
SourceAsset = ct.config.SourceAsset
SynthesisRequest = ct.config.SynthesisRequest
SynthesizedDocument = ct.config.SynthesizedDocument
PageRecord = ct.config.PageRecord
DrawnRegion = ct.config.DrawnRegion
SlotRasterizer = ct.rasterize.SlotRasterizer
EmptyPatternError = ct.errors.EmptyPatternError
SlotEncodeError = ct.errors.SlotEncodeError
SynthesisCancelled = ct.errors.SynthesisCancelled

mm_to_points = ct.config.mm_to_points
slot_key = ct.rasterize.slot_key

FACE_FRONT = ct.config.FACE_FRONT
FACE_BACK = ct.config.FACE_BACK
DEFAULT_WORKERS = ct.config.DEFAULT_WORKERS
PLACEHOLDER_TEXT = ct.config.PLACEHOLDER_TEXT
PLACEHOLDER_FONT = ct.config.PLACEHOLDER_FONT
PLACEHOLDER_FONT_SIZE = ct.config.PLACEHOLDER_FONT_SIZE
PLACEHOLDER_INSET = ct.config.PLACEHOLDER_INSET
PLACEHOLDER_LINE_WIDTH = ct.config.PLACEHOLDER_LINE_WIDTH
OUTLINE_LINE_WIDTH = ct.config.OUTLINE_LINE_WIDTH
OUTLINE_GRAY = ct.config.OUTLINE_GRAY
PROGRESS_BAR_WIDTH = ct.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = ct.config.PROGRESS_UPDATE_EVERY


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


#============================================
def pages_needed(target_total: int, slots_per_page: int) -> int:
	"""
	Number of sheets needed to print target_total cards.

	Args:
		target_total: Cards wanted.
		slots_per_page: Cards per sheet.

	Returns:
		Page count, zero when either input is not positive.
	"""
	if target_total <= 0 or slots_per_page <= 0:
		return 0
	return int(math.ceil(target_total / slots_per_page))


#============================================
def validate_request(request: SynthesisRequest) -> None:
	if not request.placements:
		raise EmptyPatternError("No placements provided for export.")
	if request.target_total <= 0:
		raise EmptyPatternError(f"Target card count must be positive, got {request.target_total}.")


#============================================
def placement_region(
	placement: Placement,
	page_height_pt: float,
	face: str,
	is_placeholder: bool,
) -> DrawnRegion:
	"""
	Convert a millimeter, top-left placement into a PDF point region.

	Args:
		placement: Pattern placement.
		page_height_pt: Page height in points.
		face: FACE_FRONT or FACE_BACK.
		is_placeholder: True when the asset cannot be rasterized.

	Returns:
		DrawnRegion with a bottom-left origin.
	"""
	x_pt = mm_to_points(placement.x)
	y_top_pt = mm_to_points(placement.y)
	width_pt = mm_to_points(placement.width)
	height_pt = mm_to_points(placement.height)
	draw_y = page_height_pt - y_top_pt - height_pt
	image_key = None
	if not is_placeholder:
		image_key = slot_key(placement.rotation, width_pt, height_pt)
	return DrawnRegion(
		placement_index=placement.index,
		face=face,
		image_key=image_key,
		is_placeholder=is_placeholder,
		x=x_pt,
		y=draw_y,
		width=width_pt,
		height=height_pt,
	)


#============================================
def plan_face_pages(
	request: SynthesisRequest,
	face: str,
	asset: SourceAsset,
	first_page_number: int,
) -> list[PageRecord]:
	"""
	Lay out every page for one face without drawing anything.

	The last page stops at target_total; its remaining pattern slots are
	left out rather than blanked.

	Args:
		request: Synthesis request.
		face: FACE_FRONT or FACE_BACK.
		asset: Source asset for this face.
		first_page_number: Document page number of the first page.

	Returns:
		List of PageRecord entries.
	"""
	slots_per_page = len(request.placements)
	page_count = pages_needed(request.target_total, slots_per_page)
	page_width_pt = mm_to_points(request.sheet.width)
	page_height_pt = mm_to_points(request.sheet.height)
	pattern = sorted(request.placements, key=lambda placement: placement.index)
	pages = []
	for page_index in range(page_count):
		record = PageRecord(
			page_number=first_page_number + page_index,
			face=face,
			sheet=request.sheet,
			width=page_width_pt,
			height=page_height_pt,
		)
		for slot, placement in enumerate(pattern):
			global_index = page_index * slots_per_page + slot
			if global_index >= request.target_total:
				break
			record.regions.append(
				placement_region(placement, page_height_pt, face, asset.is_opaque_document)
			)
		pages.append(record)
	return pages


#============================================
def draw_placeholder(pdf: reportlab.pdfgen.canvas.Canvas, region: DrawnRegion) -> None:
	"""
	Draw a bordered box with a short label for a slot that has no raster.

	Args:
		pdf: ReportLab canvas.
		region: Slot region in points.
	"""
	pdf.setLineWidth(PLACEHOLDER_LINE_WIDTH)
	pdf.setStrokeColorRGB(0.0, 0.0, 0.0)
	pdf.rect(region.x, region.y, region.width, region.height, stroke=1, fill=0)
	pdf.setFillColorRGB(0.0, 0.0, 0.0)
	pdf.setFont(PLACEHOLDER_FONT, PLACEHOLDER_FONT_SIZE)
	baseline_y = region.y + region.height - PLACEHOLDER_INSET - PLACEHOLDER_FONT_SIZE
	pdf.drawString(region.x + PLACEHOLDER_INSET, baseline_y, PLACEHOLDER_TEXT)


#============================================
def draw_region_outlines(pdf: reportlab.pdfgen.canvas.Canvas, regions: list[DrawnRegion]) -> None:
	"""
	Stroke thin cut outlines around drawn slots.

	Args:
		pdf: ReportLab canvas.
		regions: Slot regions on the current page.
	"""
	pdf.setLineWidth(OUTLINE_LINE_WIDTH)
	pdf.setStrokeColorRGB(OUTLINE_GRAY, OUTLINE_GRAY, OUTLINE_GRAY)
	for region in regions:
		pdf.rect(region.x, region.y, region.width, region.height, stroke=1, fill=0)


class FaceRenderer:
	"""
	Resolves slot images for one face and draws its pages.

	Rasters are requested page by page; a page is drawn only once every
	raster it needs is ready.
	"""

	def __init__(
		self,
		asset: SourceAsset,
		executor: concurrent.futures.Executor,
		cancel_event: threading.Event | None,
	):
		self.asset = asset
		self.executor = executor
		self.cancel_event = cancel_event
		self.rasterizer = None
		if not asset.is_opaque_document:
			self.rasterizer = SlotRasterizer(asset.data, asset.reference)
		self.readers: dict[tuple, reportlab.lib.utils.ImageReader] = {}

	def prepare(self) -> None:
		if self.rasterizer is not None:
			self.rasterizer.decode()

	def check_cancelled(self) -> None:
		if self.cancel_event is not None and self.cancel_event.is_set():
			raise SynthesisCancelled("Synthesis was cancelled.")

	def resolve_page(self, page: PageRecord) -> None:
		"""
		Make sure every raster the page needs exists.

		Args:
			page: Planned page.
		"""
		if self.rasterizer is None:
			return
		pending = {}
		for region in page.regions:
			key = region.image_key
			if key in self.readers or key in pending:
				continue
			pending[key] = self.executor.submit(self.rasterizer.rasterize, *key)
		try:
			for key, future in pending.items():
				while True:
					self.check_cancelled()
					try:
						png_bytes = future.result(timeout=0.1)
						break
					except concurrent.futures.TimeoutError:
						continue
				self.readers[key] = self.build_reader(key, png_bytes)
		except BaseException:
			for future in pending.values():
				future.cancel()
			raise

	def build_reader(self, key: tuple, png_bytes: bytes) -> reportlab.lib.utils.ImageReader:
		try:
			return reportlab.lib.utils.ImageReader(io.BytesIO(png_bytes))
		except Exception as error:
			raise SlotEncodeError(key, str(error)) from error

	def draw_page(self, pdf: reportlab.pdfgen.canvas.Canvas, page: PageRecord) -> None:
		"""
		Draw every region on the page.

		Args:
			pdf: ReportLab canvas positioned on a fresh page.
			page: Planned page with all rasters resolved.
		"""
		for region in page.regions:
			if region.is_placeholder:
				draw_placeholder(pdf, region)
				continue
			reader = self.readers[region.image_key]
			try:
				pdf.drawImage(
					reader,
					region.x,
					region.y,
					width=region.width,
					height=region.height,
					mask="auto",
					preserveAspectRatio=False,
					anchor="sw",
				)
			except Exception as error:
				raise SlotEncodeError(region.image_key, str(error)) from error


#============================================
def synthesize_document(
	request: SynthesisRequest,
	max_workers: int = DEFAULT_WORKERS,
	cancel_event: threading.Event | None = None,
	verbose: bool = False,
) -> SynthesizedDocument:
	"""
	Build the multi-page PDF for a pattern, a target count and the faces.

	Front pages come first, then back pages. Either the whole document is
	returned or an exception is raised; nothing partial escapes.

	Args:
		request: Synthesis request.
		max_workers: Upper bound on concurrent slot rasterizations.
		cancel_event: Set it from another thread to abort the run.
		verbose: Print progress while drawing.

	Returns:
		SynthesizedDocument with page records and PDF bytes.
	"""
	validate_request(request)
	slots_per_page = len(request.placements)
	page_count = pages_needed(request.target_total, slots_per_page)

	faces = [(FACE_FRONT, request.front)]
	if request.back is not None:
		faces.append((FACE_BACK, request.back))

	planned: list[tuple[SourceAsset, list[PageRecord]]] = []
	next_page_number = 1
	for face, asset in faces:
		face_pages = plan_face_pages(request, face, asset, next_page_number)
		next_page_number += len(face_pages)
		planned.append((asset, face_pages))

	page_width_pt = mm_to_points(request.sheet.width)
	page_height_pt = mm_to_points(request.sheet.height)
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(page_width_pt, page_height_pt))

	all_pages: list[PageRecord] = []
	image_resources = 0
	workers = max(1, max_workers)
	with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
		renderers = [FaceRenderer(asset, executor, cancel_event) for asset, _ in planned]
		# a source that will not decode fails the run before any page is drawn
		for renderer in renderers:
			renderer.prepare()
		for renderer, (_, face_pages) in zip(renderers, planned):
			total = len(face_pages)
			prefix = face_pages[0].face.capitalize() if face_pages else ""
			for position, page in enumerate(face_pages, start=1):
				renderer.check_cancelled()
				renderer.resolve_page(page)
				renderer.draw_page(pdf, page)
				if request.draw_outlines:
					draw_region_outlines(pdf, page.regions)
				pdf.showPage()
				all_pages.append(page)
				if verbose and (position % PROGRESS_UPDATE_EVERY == 0 or position == total):
					print_progress(f"{prefix} pages", position, total)
			if verbose and total > 0:
				print()
			image_resources += len(renderer.readers)

	pdf.save()
	return SynthesizedDocument(
		pages=all_pages,
		pdf_bytes=buffer.getvalue(),
		pages_per_face=page_count,
		slots_per_page=slots_per_page,
		image_resources=image_resources,
		margin=request.margin,
	)


#============================================
def inspect_pdf(pdf_bytes: bytes) -> list[dict]:
	"""
	Read back page sizes and image counts from a PDF.

	Args:
		pdf_bytes: PDF document bytes.

	Returns:
		One dict per page with width, height and image_names.
	"""
	reader = pypdf.PdfReader(io.BytesIO(pdf_bytes))
	summary = []
	for page in reader.pages:
		names = []
		resources = page.get("/Resources")
		if resources is not None:
			resources = resources.get_object()
			xobjects = resources.get("/XObject")
			if xobjects is not None:
				names = sorted(str(name) for name in xobjects.get_object().keys())
		summary.append(
			{
				"width": float(page.mediabox.width),
				"height": float(page.mediabox.height),
				"image_names": names,
			}
		)
	return summary
