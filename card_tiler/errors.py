"""
Exceptions raised while resolving assets and building documents.

Layout geometry never raises; an unusable sheet or card simply fits zero
cards. Everything below is fatal for the run that raised it.
"""


class CardTilerError(Exception):
	"""Base class for all card tiler failures."""


class AssetResolutionError(CardTilerError):
	"""Source bytes could not be read or fetched."""

	def __init__(self, reference: str, reason: str):
		super().__init__(f"Could not resolve asset {reference}: {reason}")
		self.reference = reference
		self.reason = reason


class SourceDecodeError(CardTilerError):
	"""Source bytes are not a decodable raster image."""

	def __init__(self, reference: str, reason: str = ""):
		message = f"Could not decode image {reference}"
		if reason:
			message += f": {reason}"
		super().__init__(message)
		self.reference = reference


class SlotEncodeError(CardTilerError):
	"""A rasterized slot image could not be encoded or embedded."""

	def __init__(self, key: tuple, reason: str = ""):
		message = f"Could not encode slot image {key}"
		if reason:
			message += f": {reason}"
		super().__init__(message)
		self.key = key


class EmptyPatternError(CardTilerError):
	"""No placements, or a non-positive target count."""


class SynthesisCancelled(CardTilerError):
	"""The run was aborted before the document was complete."""


class ExportNotReady(CardTilerError):
	"""The session is missing something the user must supply first."""
