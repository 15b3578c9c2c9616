"""
Caller-owned tiling session.

Holds the form fields a user edits, the last layout and the resolved assets
for one export. Nothing here outlives the session object.
"""

# Standard Library
import dataclasses
import threading

# local repo modules
import card_tiler as ct
import card_tiler.assets
import card_tiler.config
import card_tiler.errors
import card_tiler.optimize
import card_tiler.synthesize


Dimension = ct.config.Dimension
LayoutRequest = ct.config.LayoutRequest
LayoutResult = ct.config.LayoutResult
SourceAsset = ct.config.SourceAsset
SynthesisRequest = ct.config.SynthesisRequest
SynthesizedDocument = ct.config.SynthesizedDocument
ExportNotReady = ct.errors.ExportNotReady

DEFAULT_PAPER = ct.config.DEFAULT_PAPER
DEFAULT_CARD_WIDTH = ct.config.DEFAULT_CARD_WIDTH
DEFAULT_CARD_HEIGHT = ct.config.DEFAULT_CARD_HEIGHT
DEFAULT_EXPORT_MARGIN = ct.config.DEFAULT_EXPORT_MARGIN
DEFAULT_WORKERS = ct.config.DEFAULT_WORKERS


@dataclasses.dataclass
class TilingSession:
	front: str | None = None
	back: str | None = None
	paper: str | None = DEFAULT_PAPER
	paper_width: float | None = None
	paper_height: float | None = None
	card_width: float = DEFAULT_CARD_WIDTH
	card_height: float = DEFAULT_CARD_HEIGHT
	margin: float = DEFAULT_EXPORT_MARGIN
	count: int = 0
	horizontal_only: bool = False
	vertical_only: bool = False
	auto_rotate: bool = True
	draw_outlines: bool = False
	layout: LayoutResult | None = None
	front_asset: SourceAsset | None = None
	back_asset: SourceAsset | None = None

	@property
	def sheet(self) -> Dimension:
		# explicit width and height override the preset
		if self.paper_width is not None and self.paper_height is not None:
			return Dimension(self.paper_width, self.paper_height)
		return ct.config.paper_dimension(self.paper or DEFAULT_PAPER)

	def layout_request(self) -> LayoutRequest:
		return LayoutRequest(
			sheet=self.sheet,
			card=Dimension(self.card_width, self.card_height),
			margin=self.margin,
			max_cards=self.count if self.count > 0 else None,
			horizontal_only=self.horizontal_only,
			vertical_only=self.vertical_only,
			auto_rotate=self.auto_rotate,
		)

	def optimize(self) -> LayoutResult:
		"""
		Run the optimizer on the current fields and keep the result.
		"""
		self.layout = ct.optimize.optimize_layout(self.layout_request())
		return self.layout

	def target_total(self) -> int:
		"""
		Cards to print: the user's count, or one full sheet when unset.
		"""
		if self.count > 0:
			return self.count
		if self.layout is None:
			return 0
		return self.layout.fitted_count

	def check_ready(self) -> None:
		"""
		Refuse to export with missing inputs.

		Raises:
			ExportNotReady: With a message meant for the user.
		"""
		if not self.front:
			raise ExportNotReady("Please provide a front side before exporting.")
		if self.layout is None or not self.layout.placements:
			raise ExportNotReady("Nothing to print: the card does not fit on the sheet, or layout has not run.")
		if self.target_total() <= 0:
			raise ExportNotReady("Set the number of cards needed.")

	def resolve(self) -> tuple[SourceAsset, SourceAsset | None]:
		self.front_asset, self.back_asset = ct.assets.resolve_assets(self.front, self.back)
		return (self.front_asset, self.back_asset)

	def synthesis_request(self) -> SynthesisRequest:
		return SynthesisRequest(
			sheet=self.sheet,
			target_total=self.target_total(),
			front=self.front_asset,
			back=self.back_asset,
			placements=list(self.layout.placements),
			margin=self.margin,
			draw_outlines=self.draw_outlines,
		)

	def export(
		self,
		max_workers: int = DEFAULT_WORKERS,
		cancel_event: threading.Event | None = None,
		verbose: bool = False,
	) -> SynthesizedDocument:
		"""
		Validate, resolve both faces and build the document.

		Args:
			max_workers: Concurrent slot rasterizations.
			cancel_event: Optional abort signal.
			verbose: Print progress.

		Returns:
			SynthesizedDocument.
		"""
		if self.layout is None:
			self.optimize()
		self.check_ready()
		self.resolve()
		return ct.synthesize.synthesize_document(
			self.synthesis_request(),
			max_workers=max_workers,
			cancel_event=cancel_event,
			verbose=verbose,
		)
