"""
Geometry invariants for the sheet layout optimizer.
"""

# Standard Library
import itertools
import math

# local repo modules
import card_tiler.config
import card_tiler.optimize


Dimension = card_tiler.config.Dimension
LayoutRequest = card_tiler.config.LayoutRequest

A4 = Dimension(210.0, 297.0)
BUSINESS_CARD = Dimension(50.0, 90.0)

SHEETS = [
	Dimension(210.0, 297.0),
	Dimension(297.0, 420.0),
	Dimension(250.0, 353.0),
	Dimension(215.9, 279.4),
	Dimension(100.0, 100.0),
]
CARDS = [
	Dimension(50.0, 90.0),
	Dimension(85.6, 53.98),
	Dimension(63.0, 88.0),
	Dimension(120.0, 30.0),
	Dimension(33.3, 33.3),
]
MARGINS = [0.0, 5.0, 12.5]


#============================================
def all_requests(**overrides) -> list[LayoutRequest]:
	"""
	Build a grid of requests across sheets, cards and margins.
	"""
	requests = []
	for sheet, card, margin in itertools.product(SHEETS, CARDS, MARGINS):
		requests.append(LayoutRequest(sheet=sheet, card=card, margin=margin, **overrides))
	return requests


#============================================
def test_uniform_grid_count_without_rotation() -> None:
	"""
	With auto rotate off the count is the plain grid count.
	"""
	for request in all_requests(auto_rotate=False):
		usable_width = request.sheet.width - 2.0 * request.margin
		usable_height = request.sheet.height - 2.0 * request.margin
		expected = math.floor(usable_width / request.card.width) * math.floor(usable_height / request.card.height)
		result = card_tiler.optimize.optimize_layout(request)
		assert result.fitted_count == expected
		assert len(result.placements) == expected
		assert all(placement.rotation == 0 for placement in result.placements)


#============================================
def test_placements_in_bounds_and_non_overlapping() -> None:
	"""
	Every policy keeps cards inside the margins with no overlaps.
	"""
	policies = [
		{"auto_rotate": True},
		{"auto_rotate": False},
		{"horizontal_only": True},
		{"vertical_only": True},
	]
	for overrides in policies:
		for request in all_requests(**overrides):
			result = card_tiler.optimize.optimize_layout(request)
			violations = card_tiler.optimize.pattern_violations(result, request)
			assert violations == [], f"{request}: {violations[:5]}"


#============================================
def test_indices_are_sequential() -> None:
	"""
	Indices run 0..n-1 in emission order.
	"""
	for request in all_requests():
		result = card_tiler.optimize.optimize_layout(request)
		assert [placement.index for placement in result.placements] == list(range(result.fitted_count))


#============================================
def test_horizontal_only_scenario() -> None:
	"""
	A4, 50x90 card, 5 mm margin, upright only: 4 columns by 3 rows.
	"""
	request = LayoutRequest(sheet=A4, card=BUSINESS_CARD, margin=5.0, horizontal_only=True)
	result = card_tiler.optimize.optimize_layout(request)
	assert result.fitted_count == 12
	assert all(placement.rotation == 0 for placement in result.placements)
	first = result.placements[0]
	assert (first.x, first.y, first.width, first.height) == (5.0, 5.0, 50.0, 90.0)
	second = result.placements[1]
	# row-major: second card is the next column on the first row
	assert (second.row, second.col, second.x, second.y) == (0, 1, 55.0, 5.0)
	last = result.placements[-1]
	assert (last.row, last.col, last.x, last.y) == (2, 3, 155.0, 185.0)


#============================================
def test_vertical_only_rotates_every_card() -> None:
	"""
	Forced rotation swaps the card axes for every cell.
	"""
	request = LayoutRequest(sheet=A4, card=BUSINESS_CARD, margin=5.0, vertical_only=True)
	result = card_tiler.optimize.optimize_layout(request)
	assert result.fitted_count == 2 * 5
	for placement in result.placements:
		assert placement.rotation == 90
		assert (placement.width, placement.height) == (90.0, 50.0)


#============================================
def test_both_forced_orientations_prefer_horizontal() -> None:
	"""
	Horizontal wins when both forced orientations are requested.
	"""
	both = LayoutRequest(sheet=A4, card=BUSINESS_CARD, margin=5.0, horizontal_only=True, vertical_only=True)
	horizontal = LayoutRequest(sheet=A4, card=BUSINESS_CARD, margin=5.0, horizontal_only=True)
	assert both.orientation_policy == card_tiler.config.POLICY_HORIZONTAL
	assert card_tiler.optimize.optimize_layout(both) == card_tiler.optimize.optimize_layout(horizontal)


#============================================
def test_card_larger_than_sheet_fits_nothing() -> None:
	"""
	An oversized card gives an empty pattern, not an error.
	"""
	request = LayoutRequest(sheet=A4, card=Dimension(400.0, 500.0), margin=5.0)
	result = card_tiler.optimize.optimize_layout(request)
	assert result.fitted_count == 0
	assert result.placements == []


#============================================
def test_margin_consuming_sheet_fits_nothing() -> None:
	"""
	A margin wider than half the sheet leaves no usable area.
	"""
	request = LayoutRequest(sheet=A4, card=BUSINESS_CARD, margin=150.0)
	assert card_tiler.optimize.usable_area(request.sheet, request.margin) == (0.0, 0.0)
	result = card_tiler.optimize.optimize_layout(request)
	assert result.fitted_count == 0
	assert result.placements == []


#============================================
def test_zero_card_dimension_fits_nothing() -> None:
	"""
	A zero-width card is degenerate geometry, not a crash.
	"""
	for auto_rotate in (True, False):
		request = LayoutRequest(sheet=A4, card=Dimension(0.0, 90.0), auto_rotate=auto_rotate)
		result = card_tiler.optimize.optimize_layout(request)
		assert result.fitted_count == 0
