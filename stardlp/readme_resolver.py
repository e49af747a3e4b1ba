import base64
import binascii
import os
from dataclasses import dataclass

from stardlp import document_converter
from stardlp import star_log


README_CANDIDATES = (
	"README.md",
	"README.markdown",
	"readme.md",
	"README.org",
	"README.rst",
	"README.txt",
	"README.rdoc",
	"README.adoc",
	"README",
	"readme.markdown",
	"readme.org",
	"readme.rst",
	"readme.txt",
	"readme.rdoc",
	"readme.adoc",
	"readme",
)
CONVERTIBLE_FORMATS = {
	".org": "org",
	".rst": "rst",
	".txt": "txt",
	"": "txt",
}
# root files without readme in the name are only taken in these formats
FALLBACK_EXTENSIONS = (".rst", ".org", ".txt")


#============================================
class ReadmeNotFoundError(LookupError):
	"""
	Raised when a repository has no README under any known name.
	"""


#============================================
@dataclass(frozen=True)
class ReadmeResult:
	content: str
	format: str
	path: str = ""
	converted: bool = False

	@property
	def needs_note(self) -> bool:
		return self.format != "markdown"


#============================================
def classify_readme_format(filename: str) -> str:
	"""
	Map a README filename to markdown or the source format tag needing conversion.
	"""
	_, extension = os.path.splitext(os.path.basename(filename))
	return CONVERTIBLE_FORMATS.get(extension.lower(), "markdown")


#============================================
def needs_conversion(readme_format: str) -> bool:
	return readme_format != "markdown"


#============================================
def decode_content_payload(payload: dict) -> str:
	"""
	Decode a contents API payload to text.
	"""
	content = payload.get("content") or ""
	encoding = (payload.get("encoding") or "base64").lower()
	if encoding != "base64":
		return content
	try:
		raw_bytes = base64.b64decode("".join(content.split()))
	except (binascii.Error, ValueError) as error:
		raise ValueError(f"Invalid base64 README payload: {error}") from error
	return raw_bytes.decode("utf-8", errors="replace")


#============================================
def fetch_candidate(client, full_name: str, path: str, converter_fn, log_fn=None) -> ReadmeResult | None:
	"""
	Fetch one README path and classify it; None means not usable.
	"""
	try:
		payload = client.get_file_content(full_name, path)
	except Exception as error:
		star_log.emit(log_fn, f"Error fetching {path} for {full_name}: {error}")
		return None
	if payload is None:
		return None
	try:
		text = decode_content_payload(payload)
	except ValueError as error:
		star_log.emit(log_fn, f"Error decoding {path} for {full_name}: {error}")
		return None
	readme_format = classify_readme_format(path)
	converted = False
	if needs_conversion(readme_format):
		text, converted = converter_fn(text, readme_format)
	return ReadmeResult(content=text, format=readme_format, path=path, converted=converted)


#============================================
def find_readme_in_root(client, full_name: str, log_fn=None) -> str | None:
	"""
	Pick a README-like file from the root listing.

	A file whose name contains readme (case-insensitive) wins; otherwise the
	first rst, org or txt file is used.
	"""
	try:
		entries = client.list_root_entries(full_name)
	except Exception as error:
		star_log.emit(log_fn, f"Error listing root directory for {full_name}: {error}")
		return None
	files = [entry for entry in entries if entry.get("type") == "file"]
	for entry in files:
		name = entry.get("name") or ""
		if "readme" in name.lower():
			return entry.get("path") or name
	for entry in files:
		name = entry.get("name") or ""
		_, extension = os.path.splitext(name)
		if extension.lower() in FALLBACK_EXTENSIONS:
			return entry.get("path") or name
	return None


#============================================
def resolve_readme(client, full_name: str, converter_fn=None, log_fn=None) -> ReadmeResult | None:
	"""
	Find README content under known names, then by scanning the root listing.

	Args:
		client: object exposing get_file_content and list_root_entries.
		full_name: repository in owner/repo form.
		converter_fn: callable(content, source_format) -> (text, converted).
		log_fn: optional callable for progress logging.

	Returns:
		ReadmeResult for the first usable file, or None when no README exists.
	"""
	if converter_fn is None:
		def converter_fn(content, source_format):
			return document_converter.convert_document(content, source_format, log_fn=log_fn)
	for candidate in README_CANDIDATES:
		result = fetch_candidate(client, full_name, candidate, converter_fn, log_fn)
		if result is not None:
			return result
	fallback_path = find_readme_in_root(client, full_name, log_fn)
	if fallback_path is None:
		return None
	star_log.emit(log_fn, f"Found README via root listing for {full_name}: {fallback_path}")
	return fetch_candidate(client, full_name, fallback_path, converter_fn, log_fn)
