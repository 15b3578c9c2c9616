"""
Shared configuration, constants and data model.
"""

import dataclasses


POINTS_PER_INCH = 72.0
MM_PER_INCH = 25.4

DEFAULT_PAPER = "A4"
DEFAULT_CARD_WIDTH = 50.0
DEFAULT_CARD_HEIGHT = 90.0
DEFAULT_LAYOUT_MARGIN = 0.0
DEFAULT_EXPORT_MARGIN = 5.0

# Paper presets in millimeters as (width, height)
PAPER_SIZES = {
	"A4": (210.0, 297.0),
	"A3": (297.0, 420.0),
	"B4": (250.0, 353.0),
	"LETTER": (215.9, 279.4),
}

ROTATION_NONE = 0
ROTATION_QUARTER = 90

POLICY_AUTO = "auto"
POLICY_HORIZONTAL = "horizontal"
POLICY_VERTICAL = "vertical"

COORDINATE_PRECISION = 6
KEY_PRECISION = 3
SUPERSAMPLE = 2
RASTER_FORMAT = "PNG"

PLACEHOLDER_TEXT = "PDF (not embedded)"
PLACEHOLDER_FONT = "Helvetica"
PLACEHOLDER_FONT_SIZE = 8.0
PLACEHOLDER_INSET = 5.0
PLACEHOLDER_LINE_WIDTH = 0.5
OUTLINE_LINE_WIDTH = 0.3
OUTLINE_GRAY = 0.7

FACE_FRONT = "front"
FACE_BACK = "back"

DEFAULT_WORKERS = 4
FETCH_TIMEOUT = 30.0
PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 1


@dataclasses.dataclass(frozen=True)
class Dimension:
	width: float
	height: float


@dataclasses.dataclass
class LayoutRequest:
	sheet: Dimension
	card: Dimension
	margin: float = DEFAULT_LAYOUT_MARGIN
	max_cards: int | None = None
	horizontal_only: bool = False
	vertical_only: bool = False
	auto_rotate: bool = True

	@property
	def orientation_policy(self) -> str:
		# horizontal wins when both are forced
		if self.horizontal_only:
			return POLICY_HORIZONTAL
		if self.vertical_only:
			return POLICY_VERTICAL
		return POLICY_AUTO


@dataclasses.dataclass(frozen=True)
class Placement:
	x: float
	y: float
	width: float
	height: float
	rotation: int
	row: int
	col: int
	index: int


@dataclasses.dataclass(frozen=True)
class ColumnSplit:
	strategy: str
	columns_a: int
	columns_b: int
	rows_a: int
	rows_b: int
	yield_count: int


@dataclasses.dataclass
class LayoutResult:
	placements: list[Placement]
	fitted_count: int
	split: ColumnSplit


@dataclasses.dataclass
class SourceAsset:
	reference: str
	data: bytes
	is_opaque_document: bool
	content_type: str = ""


@dataclasses.dataclass
class SynthesisRequest:
	sheet: Dimension
	target_total: int
	front: SourceAsset
	placements: list[Placement]
	back: SourceAsset | None = None
	margin: float = DEFAULT_EXPORT_MARGIN
	draw_outlines: bool = False


@dataclasses.dataclass
class DrawnRegion:
	placement_index: int
	face: str
	image_key: tuple[int, float, float] | None
	is_placeholder: bool
	x: float
	y: float
	width: float
	height: float


@dataclasses.dataclass
class PageRecord:
	page_number: int
	face: str
	sheet: Dimension
	width: float
	height: float
	regions: list[DrawnRegion] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class SynthesizedDocument:
	pages: list[PageRecord]
	pdf_bytes: bytes
	pages_per_face: int
	slots_per_page: int
	image_resources: int
	margin: float = DEFAULT_EXPORT_MARGIN

	def face_pages(self, face: str) -> list[PageRecord]:
		return [page for page in self.pages if page.face == face]


#============================================
def mm_to_points(value: float) -> float:
	"""
	Convert millimeters to points.

	Args:
		value: Millimeter value.

	Returns:
		Points value.
	"""
	return value * POINTS_PER_INCH / MM_PER_INCH


#============================================
def paper_dimension(name: str) -> Dimension:
	"""
	Look up a paper preset by name.

	Args:
		name: Preset name, case insensitive.

	Returns:
		Dimension in millimeters.
	"""
	width, height = PAPER_SIZES[name.strip().upper()]
	return Dimension(width, height)
