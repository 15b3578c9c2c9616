"""
Slot rasterization.

Each slot shape gets its own PNG: the source image cover-scaled into the
slot box and, for quarter-turned slots, turned so that it reads upright when
drawn into an unrotated rectangle on the page.
"""

# Standard Library
import concurrent.futures
import io
import threading

# PIP3 modules
import PIL.Image
import PIL.ImageOps

# local repo modules
import card_tiler as ct
import card_tiler.config
import card_tiler.errors


SourceDecodeError = ct.errors.SourceDecodeError
SlotEncodeError = ct.errors.SlotEncodeError

ROTATION_QUARTER = ct.config.ROTATION_QUARTER
KEY_PRECISION = ct.config.KEY_PRECISION
SUPERSAMPLE = ct.config.SUPERSAMPLE
RASTER_FORMAT = ct.config.RASTER_FORMAT


#============================================
def slot_key(rotation: int, width_pt: float, height_pt: float) -> tuple[int, float, float]:
	"""
	Build the memo key for one slot shape.

	Args:
		rotation: 0 or 90.
		width_pt: Slot width in points.
		height_pt: Slot height in points.

	Returns:
		Tuple of (rotation, width, height) rounded to KEY_PRECISION places.
	"""
	return (rotation, round(width_pt, KEY_PRECISION), round(height_pt, KEY_PRECISION))


#============================================
def decode_source(data: bytes, reference: str = "<bytes>") -> PIL.Image.Image:
	"""
	Decode source bytes into a loaded Pillow image.

	Args:
		data: Encoded image bytes.
		reference: Asset reference for error messages.

	Returns:
		PIL image in RGB or RGBA mode.
	"""
	try:
		image = PIL.Image.open(io.BytesIO(data))
		image.load()
		# honor the EXIF orientation tag the way viewers do
		image = PIL.ImageOps.exif_transpose(image)
	except (PIL.UnidentifiedImageError, PIL.Image.DecompressionBombError, OSError, ValueError) as error:
		raise SourceDecodeError(reference, str(error)) from error
	if image.width <= 0 or image.height <= 0:
		raise SourceDecodeError(reference, "image has no pixels")
	has_alpha = image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info
	if has_alpha:
		return image.convert("RGBA")
	return image.convert("RGB")


#============================================
def cover_crop(image: PIL.Image.Image, box_width: int, box_height: int) -> PIL.Image.Image:
	"""
	Scale an image to cover a box, then crop the overflow around the center.

	Args:
		image: Source image.
		box_width: Box width in pixels.
		box_height: Box height in pixels.

	Returns:
		Image of exactly box_width x box_height.
	"""
	scale = max(box_width / image.width, box_height / image.height)
	scaled_width = max(box_width, int(round(image.width * scale)))
	scaled_height = max(box_height, int(round(image.height * scale)))
	scaled = image.resize((scaled_width, scaled_height), PIL.Image.Resampling.LANCZOS)
	left = (scaled_width - box_width) // 2
	top = (scaled_height - box_height) // 2
	return scaled.crop((left, top, left + box_width, top + box_height))


#============================================
def render_slot_image(
	image: PIL.Image.Image,
	rotation: int,
	width_pt: float,
	height_pt: float,
) -> PIL.Image.Image:
	"""
	Compose the slot raster for a decoded source.

	Args:
		image: Decoded source image.
		rotation: 0 or 90.
		width_pt: Slot width in points.
		height_pt: Slot height in points.

	Returns:
		Image sized to the slot at SUPERSAMPLE pixels per point.
	"""
	canvas_width = max(1, int(round(width_pt * SUPERSAMPLE)))
	canvas_height = max(1, int(round(height_pt * SUPERSAMPLE)))
	if rotation == ROTATION_QUARTER:
		# the card is drawn upright into the swapped box, then turned clockwise
		upright = cover_crop(image, canvas_height, canvas_width)
		return upright.transpose(PIL.Image.Transpose.ROTATE_270)
	return cover_crop(image, canvas_width, canvas_height)


#============================================
def encode_png(image: PIL.Image.Image, key: tuple) -> bytes:
	buffer = io.BytesIO()
	try:
		image.save(buffer, format=RASTER_FORMAT)
	except (OSError, ValueError) as error:
		raise SlotEncodeError(key, str(error)) from error
	return buffer.getvalue()


#============================================
def rasterize_slot(
	source: bytes,
	rotation: int,
	width_pt: float,
	height_pt: float,
	reference: str = "<bytes>",
) -> bytes:
	"""
	Turn source image bytes into PNG bytes for one slot shape.

	Args:
		source: Encoded source image.
		rotation: 0 or 90.
		width_pt: Slot width in points.
		height_pt: Slot height in points.
		reference: Asset reference for error messages.

	Returns:
		PNG bytes.
	"""
	image = decode_source(source, reference)
	slot_image = render_slot_image(image, rotation, width_pt, height_pt)
	return encode_png(slot_image, slot_key(rotation, width_pt, height_pt))


class BuildOnceCache:
	"""
	Per-run get-or-compute cache with at most one build in flight per key.

	The first caller for a key builds the value; concurrent callers for the
	same key wait for that build and get its value or its exception.
	"""

	def __init__(self):
		self._lock = threading.Lock()
		self._futures: dict = {}

	def get(self, key, build):
		with self._lock:
			future = self._futures.get(key)
			owner = future is None
			if owner:
				future = concurrent.futures.Future()
				self._futures[key] = future
		if owner:
			try:
				future.set_result(build())
			except BaseException as error:
				future.set_exception(error)
		return future.result()

	def __contains__(self, key) -> bool:
		with self._lock:
			future = self._futures.get(key)
		return future is not None and future.done()

	def __len__(self) -> int:
		with self._lock:
			return len(self._futures)

	def keys(self) -> list:
		with self._lock:
			return list(self._futures.keys())


class SlotRasterizer:
	"""
	Rasterizes slot shapes for one source asset, memoized by slot key.
	"""

	def __init__(self, source: bytes, reference: str = "<bytes>"):
		self.source = source
		self.reference = reference
		self.cache = BuildOnceCache()
		self._decoded = BuildOnceCache()

	def decode(self) -> PIL.Image.Image:
		"""
		Decode the source once; later calls reuse the result or the error.
		"""
		return self._decoded.get("source", lambda: decode_source(self.source, self.reference))

	def _build(self, key: tuple[int, float, float]) -> bytes:
		rotation, width_pt, height_pt = key
		slot_image = render_slot_image(self.decode(), rotation, width_pt, height_pt)
		return encode_png(slot_image, key)

	def rasterize(self, rotation: int, width_pt: float, height_pt: float) -> bytes:
		"""
		Return PNG bytes for a slot shape, building them at most once.
		"""
		key = slot_key(rotation, width_pt, height_pt)
		return self.cache.get(key, lambda: self._build(key))
