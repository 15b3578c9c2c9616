"""
Sheet layout optimizer.

Packs identical card rectangles onto one sheet. Cards may sit in their
natural orientation (A) or turned a quarter turn (B). In mixed mode the
sheet is split into a left block of full-height A columns and a right block
of full-height B columns; the best split comes from two bounded sweeps plus
the two single-orientation grids. This is a heuristic, not an exact packer.
"""

# Standard Library
import math

# local repo modules
import card_tiler as ct
import card_tiler.config


Dimension = ct.config.Dimension
LayoutRequest = ct.config.LayoutRequest
LayoutResult = ct.config.LayoutResult
Placement = ct.config.Placement
ColumnSplit = ct.config.ColumnSplit

ROTATION_NONE = ct.config.ROTATION_NONE
ROTATION_QUARTER = ct.config.ROTATION_QUARTER
POLICY_HORIZONTAL = ct.config.POLICY_HORIZONTAL
POLICY_VERTICAL = ct.config.POLICY_VERTICAL
COORDINATE_PRECISION = ct.config.COORDINATE_PRECISION


#============================================
def usable_area(sheet: Dimension, margin: float) -> tuple[float, float]:
	"""
	Compute the sheet area left inside a uniform margin.

	Args:
		sheet: Sheet size in millimeters.
		margin: Margin on every side in millimeters.

	Returns:
		Tuple of (usable_width, usable_height), clamped to zero.
	"""
	usable_width = max(0.0, sheet.width - 2.0 * margin)
	usable_height = max(0.0, sheet.height - 2.0 * margin)
	return (usable_width, usable_height)


#============================================
def fit_count(available: float, size: float) -> int:
	"""
	Count how many cells of one size fit along an axis.
	"""
	if size <= 0.0 or available <= 0.0:
		return 0
	return int(math.floor(available / size))


#============================================
def make_placement(
	x: float,
	y: float,
	width: float,
	height: float,
	rotation: int,
	row: int,
	col: int,
	index: int,
) -> Placement:
	return Placement(
		x=round(x, COORDINATE_PRECISION),
		y=round(y, COORDINATE_PRECISION),
		width=round(width, COORDINATE_PRECISION),
		height=round(height, COORDINATE_PRECISION),
		rotation=rotation,
		row=row,
		col=col,
		index=index,
	)


#============================================
def apply_cap(placements: list[Placement], max_cards: int | None) -> list[Placement]:
	"""
	Truncate a pattern to a requested card count.

	Args:
		placements: Full pattern in index order.
		max_cards: Cap, or None. A cap of zero or less means no cap.

	Returns:
		Index-order prefix of the pattern.
	"""
	if max_cards is None or max_cards <= 0:
		return placements
	return placements[:max_cards]


#============================================
def build_grid(
	cell_width: float,
	cell_height: float,
	rotation: int,
	usable_width: float,
	usable_height: float,
	margin: float,
) -> list[Placement]:
	"""
	Build a uniform single-orientation grid in row-major order.

	Args:
		cell_width: Effective card width in millimeters.
		cell_height: Effective card height in millimeters.
		rotation: Rotation tag for every cell.
		usable_width: Usable sheet width.
		usable_height: Usable sheet height.
		margin: Sheet margin, used as the grid origin.

	Returns:
		List of placements.
	"""
	columns = fit_count(usable_width, cell_width)
	rows = fit_count(usable_height, cell_height)
	placements = []
	index = 0
	for row in range(rows):
		for col in range(columns):
			placements.append(
				make_placement(
					margin + col * cell_width,
					margin + row * cell_height,
					cell_width,
					cell_height,
					rotation,
					row,
					col,
					index,
				)
			)
			index += 1
	return placements


#============================================
def search_column_split(
	card: Dimension,
	usable_width: float,
	usable_height: float,
) -> ColumnSplit:
	"""
	Find the best split of the sheet into A columns and B columns.

	The A-first sweep fixes the A column count and fills the remainder with
	B columns; the B-first sweep does the opposite. The floor on the
	remainder means the two sweeps can disagree, so both run. A later
	candidate must be strictly better to replace an earlier one.

	Args:
		card: Card size in its natural orientation.
		usable_width: Usable sheet width.
		usable_height: Usable sheet height.

	Returns:
		ColumnSplit describing the winner.
	"""
	a_width, a_height = card.width, card.height
	b_width, b_height = card.height, card.width

	columns_a_max = fit_count(usable_width, a_width)
	columns_b_max = fit_count(usable_width, b_width)
	rows_a = fit_count(usable_height, a_height)
	rows_b = fit_count(usable_height, b_height)

	best = ColumnSplit("a_first", 0, 0, rows_a, rows_b, 0)

	for columns_a in range(columns_a_max + 1):
		remaining = usable_width - columns_a * a_width
		columns_b = fit_count(remaining, b_width)
		count = columns_a * rows_a + columns_b * rows_b
		if count > best.yield_count:
			best = ColumnSplit("a_first", columns_a, columns_b, rows_a, rows_b, count)

	for columns_b in range(columns_b_max + 1):
		remaining = usable_width - columns_b * b_width
		columns_a = fit_count(remaining, a_width)
		count = columns_a * rows_a + columns_b * rows_b
		if count > best.yield_count:
			best = ColumnSplit("b_first", columns_a, columns_b, rows_a, rows_b, count)

	count_a_only = columns_a_max * rows_a
	if count_a_only > best.yield_count:
		best = ColumnSplit("a_only", columns_a_max, 0, rows_a, rows_b, count_a_only)
	count_b_only = columns_b_max * rows_b
	if count_b_only > best.yield_count:
		best = ColumnSplit("b_only", 0, columns_b_max, rows_a, rows_b, count_b_only)
	return best


#============================================
def build_mixed(card: Dimension, split: ColumnSplit, margin: float) -> list[Placement]:
	"""
	Materialize a column split: the A block, then the B block to its right.

	Both blocks are emitted column by column, top to bottom.

	Args:
		card: Card size in its natural orientation.
		split: Winning column split.
		margin: Sheet margin.

	Returns:
		List of placements.
	"""
	a_width, a_height = card.width, card.height
	b_width, b_height = card.height, card.width
	placements = []
	index = 0
	for col in range(split.columns_a):
		for row in range(split.rows_a):
			placements.append(
				make_placement(
					margin + col * a_width,
					margin + row * a_height,
					a_width,
					a_height,
					ROTATION_NONE,
					row,
					col,
					index,
				)
			)
			index += 1
	block_x = margin + split.columns_a * a_width
	for col in range(split.columns_b):
		for row in range(split.rows_b):
			placements.append(
				make_placement(
					block_x + col * b_width,
					margin + row * b_height,
					b_width,
					b_height,
					ROTATION_QUARTER,
					row,
					split.columns_a + col,
					index,
				)
			)
			index += 1
	return placements


#============================================
def optimize_layout(request: LayoutRequest) -> LayoutResult:
	"""
	Lay out as many cards as possible on one sheet.

	Never raises for geometry: a card that cannot fit, or a margin that eats
	the sheet, gives an empty pattern.

	Args:
		request: Layout request in millimeters.

	Returns:
		LayoutResult with the placement pattern and fitted count.
	"""
	usable_width, usable_height = usable_area(request.sheet, request.margin)
	card = request.card
	margin = request.margin

	if card.width <= 0.0 or card.height <= 0.0:
		split = ColumnSplit("grid", 0, 0, 0, 0, 0)
		return LayoutResult(placements=[], fitted_count=0, split=split)

	policy = request.orientation_policy
	if policy == POLICY_VERTICAL:
		grid_width, grid_height, rotation = card.height, card.width, ROTATION_QUARTER
	else:
		grid_width, grid_height, rotation = card.width, card.height, ROTATION_NONE

	if policy != ct.config.POLICY_AUTO or not request.auto_rotate:
		placements = build_grid(
			grid_width,
			grid_height,
			rotation,
			usable_width,
			usable_height,
			margin,
		)
		columns = fit_count(usable_width, grid_width)
		rows = fit_count(usable_height, grid_height)
		if rotation == ROTATION_QUARTER:
			split = ColumnSplit("grid", 0, columns, 0, rows, len(placements))
		else:
			split = ColumnSplit("grid", columns, 0, rows, 0, len(placements))
	else:
		split = search_column_split(card, usable_width, usable_height)
		placements = build_mixed(card, split, margin)

	placements = apply_cap(placements, request.max_cards)
	return LayoutResult(placements=placements, fitted_count=len(placements), split=split)


#============================================
def boxes_overlap(first: Placement, second: Placement, epsilon: float = 1e-4) -> bool:
	"""
	Check whether two placements share any interior area.

	Args:
		first: First placement.
		second: Second placement.
		epsilon: Tolerance for touching edges.

	Returns:
		True if the rectangles intersect.
	"""
	if first.x + first.width <= second.x + epsilon:
		return False
	if second.x + second.width <= first.x + epsilon:
		return False
	if first.y + first.height <= second.y + epsilon:
		return False
	if second.y + second.height <= first.y + epsilon:
		return False
	return True


#============================================
def pattern_violations(result: LayoutResult, request: LayoutRequest, epsilon: float = 1e-4) -> list[str]:
	"""
	List every bounds or overlap violation in a layout.

	Args:
		result: Layout to check.
		request: Request the layout was built from.
		epsilon: Tolerance in millimeters.

	Returns:
		Human readable violation messages, empty when the pattern is valid.
	"""
	messages = []
	margin = request.margin
	right = request.sheet.width - margin
	bottom = request.sheet.height - margin
	placements = result.placements
	for placement in placements:
		if placement.x < margin - epsilon or placement.y < margin - epsilon:
			messages.append(f"placement {placement.index} starts inside the margin")
		if placement.x + placement.width > right + epsilon:
			messages.append(f"placement {placement.index} runs past the right margin")
		if placement.y + placement.height > bottom + epsilon:
			messages.append(f"placement {placement.index} runs past the bottom margin")
	for first_pos, first in enumerate(placements):
		for second in placements[first_pos + 1:]:
			if boxes_overlap(first, second, epsilon):
				messages.append(f"placements {first.index} and {second.index} overlap")
	return messages
