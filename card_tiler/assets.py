"""
Source asset resolution.
"""

# Standard Library
import concurrent.futures
import pathlib
import urllib.error
import urllib.request

# local repo modules
import card_tiler as ct
import card_tiler.config
import card_tiler.errors


SourceAsset = ct.config.SourceAsset
AssetResolutionError = ct.errors.AssetResolutionError

FETCH_TIMEOUT = ct.config.FETCH_TIMEOUT
URL_SCHEMES = ("http://", "https://", "file://")
PDF_MAGIC = b"%PDF"


#============================================
def is_url(reference: str) -> bool:
	return reference.lower().startswith(URL_SCHEMES)


#============================================
def looks_like_document(reference: str, content_type: str, data: bytes) -> bool:
	"""
	Decide whether an asset is an opaque document rather than a raster.

	Args:
		reference: Path or URL of the asset.
		content_type: MIME type reported by the source, may be empty.
		data: Asset bytes.

	Returns:
		True for PDF documents.
	"""
	if reference.lower().split("?", 1)[0].endswith(".pdf"):
		return True
	if "pdf" in content_type.lower():
		return True
	return data.lstrip()[:4] == PDF_MAGIC


#============================================
def fetch_url(reference: str, timeout: float = FETCH_TIMEOUT) -> tuple[bytes, str]:
	"""
	Download a URL.

	Args:
		reference: URL to fetch.
		timeout: Socket timeout in seconds.

	Returns:
		Tuple of (data, content_type).
	"""
	try:
		with urllib.request.urlopen(reference, timeout=timeout) as response:
			data = response.read()
			content_type = response.headers.get("Content-Type", "") or ""
	except (urllib.error.URLError, OSError, ValueError) as error:
		raise AssetResolutionError(reference, str(error)) from error
	return (data, content_type)


#============================================
def read_path(reference: str) -> bytes:
	path = pathlib.Path(reference).expanduser()
	try:
		return path.read_bytes()
	except OSError as error:
		raise AssetResolutionError(reference, error.strerror or str(error)) from error


#============================================
def resolve_asset(reference: str, timeout: float = FETCH_TIMEOUT) -> SourceAsset:
	"""
	Fetch the bytes behind a reference and classify them.

	Args:
		reference: Local path or http(s)/file URL.
		timeout: Network timeout in seconds.

	Returns:
		SourceAsset.
	"""
	if not reference:
		raise AssetResolutionError(repr(reference), "empty reference")
	content_type = ""
	if is_url(reference):
		data, content_type = fetch_url(reference, timeout)
	else:
		data = read_path(reference)
	if not data:
		raise AssetResolutionError(reference, "no data")
	opaque = looks_like_document(reference, content_type, data)
	return SourceAsset(
		reference=reference,
		data=data,
		is_opaque_document=opaque,
		content_type=content_type,
	)


#============================================
def resolve_assets(
	front: str,
	back: str | None = None,
	timeout: float = FETCH_TIMEOUT,
) -> tuple[SourceAsset, SourceAsset | None]:
	"""
	Resolve the front and optional back references concurrently.

	A missing back reference is not a failure; it resolves to None.

	Args:
		front: Front reference.
		back: Back reference or None.
		timeout: Network timeout in seconds.

	Returns:
		Tuple of (front_asset, back_asset_or_None).
	"""
	with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
		front_future = executor.submit(resolve_asset, front, timeout)
		back_future = None
		if back:
			back_future = executor.submit(resolve_asset, back, timeout)
		front_asset = front_future.result()
		back_asset = back_future.result() if back_future is not None else None
	return (front_asset, back_asset)
