"""
Slot rasterization and the build-once cache.
"""

# Standard Library
import io
import threading
import time

# PIP3 modules
import PIL.Image
import pytest

# local repo modules
import card_tiler.errors
import card_tiler.rasterize


#============================================
def open_png(data: bytes) -> PIL.Image.Image:
	"""
	Decode PNG bytes produced by the rasterizer.
	"""
	image = PIL.Image.open(io.BytesIO(data))
	image.load()
	assert image.format == "PNG"
	return image.convert("RGB")


#============================================
def test_slot_key_rounds_jitter() -> None:
	"""
	Sub-precision jitter maps to the same key.
	"""
	first = card_tiler.rasterize.slot_key(90, 141.7322834, 255.118110)
	second = card_tiler.rasterize.slot_key(90, 141.7323001, 255.1180999)
	assert first == second == (90, 141.732, 255.118)


#============================================
def test_upright_slot_size_and_cover(split_png: bytes) -> None:
	"""
	An upright slot is supersampled and cover-cropped.
	"""
	# portrait 100x200 source into a square slot: width drives the scale,
	# the middle of the source survives, top and bottom are cropped
	data = card_tiler.rasterize.rasterize_slot(split_png, 0, 50.0, 50.0)
	image = open_png(data)
	assert image.size == (100, 100)
	top = image.getpixel((50, 10))
	bottom = image.getpixel((50, 90))
	assert top[0] > 200 and top[2] < 50
	assert bottom[2] > 200 and bottom[0] < 50


#============================================
def test_rotated_slot_turns_clockwise(split_png: bytes) -> None:
	"""
	A quarter-turned slot is landscape with the source top on the right.
	"""
	data = card_tiler.rasterize.rasterize_slot(split_png, 90, 100.0, 50.0)
	image = open_png(data)
	assert image.size == (200, 100)
	right = image.getpixel((190, 50))
	left = image.getpixel((10, 50))
	assert right[0] > 200 and right[2] < 50
	assert left[2] > 200 and left[0] < 50


#============================================
def test_tiny_slot_has_at_least_one_pixel(make_png) -> None:
	"""
	A degenerate slot still yields a 1x1 image.
	"""
	data = card_tiler.rasterize.rasterize_slot(make_png(10, 10), 0, 0.1, 0.1)
	assert open_png(data).size == (1, 1)


#============================================
def test_decode_failure_raises() -> None:
	"""
	Bytes that are not an image raise SourceDecodeError.
	"""
	with pytest.raises(card_tiler.errors.SourceDecodeError) as info:
		card_tiler.rasterize.rasterize_slot(b"not an image", 0, 10.0, 10.0, reference="card.png")
	assert info.value.reference == "card.png"


#============================================
def test_oversized_source_raises_decode_error(monkeypatch, make_png) -> None:
	"""
	An image past the Pillow pixel limit is a decode error, not a crash.
	"""
	monkeypatch.setattr(PIL.Image, "MAX_IMAGE_PIXELS", 1000)
	with pytest.raises(card_tiler.errors.SourceDecodeError) as info:
		card_tiler.rasterize.rasterize_slot(make_png(100, 100), 0, 10.0, 10.0, reference="huge.png")
	assert info.value.reference == "huge.png"


#============================================
def test_exif_orientation_is_applied() -> None:
	"""
	A sideways-stored JPEG is tiled the way it displays.
	"""
	# stored landscape, left red and right blue; orientation 6 shows it
	# turned clockwise, so it reads as a portrait with red on top
	source = PIL.Image.new("RGB", (200, 100), (0, 0, 255))
	source.paste((255, 0, 0), (0, 0, 100, 100))
	exif = PIL.Image.Exif()
	exif[0x0112] = 6
	buffer = io.BytesIO()
	source.save(buffer, format="JPEG", exif=exif, quality=95)
	data = card_tiler.rasterize.rasterize_slot(buffer.getvalue(), 0, 50.0, 100.0)
	image = open_png(data)
	assert image.size == (100, 200)
	top = image.getpixel((50, 20))
	bottom = image.getpixel((50, 180))
	assert top[0] > 200 and top[2] < 60
	assert bottom[2] > 200 and bottom[0] < 60


#============================================
def test_alpha_is_preserved() -> None:
	"""
	Transparent sources stay transparent.
	"""
	source = PIL.Image.new("RGBA", (40, 40), (255, 0, 0, 0))
	buffer = io.BytesIO()
	source.save(buffer, format="PNG")
	data = card_tiler.rasterize.rasterize_slot(buffer.getvalue(), 0, 20.0, 20.0)
	image = PIL.Image.open(io.BytesIO(data))
	assert image.mode == "RGBA"
	assert image.getpixel((5, 5))[3] == 0


#============================================
def test_build_once_cache_coalesces_concurrent_callers() -> None:
	"""
	Many threads asking for one key trigger a single build.
	"""
	cache = card_tiler.rasterize.BuildOnceCache()
	calls = []
	lock = threading.Lock()

	def build() -> str:
		with lock:
			calls.append(1)
		time.sleep(0.05)
		return "value"

	results = []

	def worker() -> None:
		results.append(cache.get("key", build))

	threads = [threading.Thread(target=worker) for _ in range(8)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join()
	assert results == ["value"] * 8
	assert len(calls) == 1
	assert "key" in cache
	assert len(cache) == 1


#============================================
def test_build_once_cache_shares_failures() -> None:
	"""
	A failed build is reported to every caller of that key.
	"""
	cache = card_tiler.rasterize.BuildOnceCache()
	calls = []

	def build():
		calls.append(1)
		raise ValueError("boom")

	for _ in range(3):
		with pytest.raises(ValueError):
			cache.get("key", build)
	assert len(calls) == 1


#============================================
def test_slot_rasterizer_memoizes_by_shape(make_png) -> None:
	"""
	Identical shapes reuse one PNG; different shapes build new ones.
	"""
	rasterizer = card_tiler.rasterize.SlotRasterizer(make_png(30, 60))
	first = rasterizer.rasterize(0, 40.0, 80.0)
	again = rasterizer.rasterize(0, 40.0000001, 80.0)
	rotated = rasterizer.rasterize(90, 80.0, 40.0)
	assert first is again
	assert rotated is not first
	assert sorted(rasterizer.cache.keys()) == [(0, 40.0, 80.0), (90, 80.0, 40.0)]
