"""
Pytest configuration for local imports and shared image fixtures.
"""

# Standard Library
import io
import os
import sys

# PIP3 modules
import PIL.Image
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()


#============================================
def encode_image(image: PIL.Image.Image, image_format: str = "PNG") -> bytes:
	"""
	Encode a Pillow image to bytes.
	"""
	buffer = io.BytesIO()
	image.save(buffer, format=image_format)
	return buffer.getvalue()


#============================================
@pytest.fixture
def make_png():
	"""
	Factory fixture: make_png(width, height, color) -> PNG bytes.
	"""
	def _make(width: int, height: int, color="red") -> bytes:
		return encode_image(PIL.Image.new("RGB", (width, height), color))
	return _make


#============================================
@pytest.fixture
def split_png() -> bytes:
	"""
	A 100x200 portrait image: red top half, blue bottom half.
	"""
	image = PIL.Image.new("RGB", (100, 200), (0, 0, 255))
	image.paste((255, 0, 0), (0, 0, 100, 100))
	return encode_image(image)


#============================================
@pytest.fixture
def pdf_bytes() -> bytes:
	"""
	A tiny stand-in PDF document.
	"""
	return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"
