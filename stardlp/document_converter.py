import os
import shutil
import subprocess
import tempfile

from stardlp import star_log


DEFAULT_CONVERTER = "pandoc"
CONVERTER_TIMEOUT_SECONDS = 60
# pandoc has no plain-text reader; markdown reads prose text unchanged
PANDOC_READERS = {
	"org": "org",
	"rst": "rst",
	"txt": "markdown",
}


#============================================
def converter_available(converter: str = DEFAULT_CONVERTER) -> bool:
	"""
	Report whether the converter executable is on PATH.
	"""
	return shutil.which(converter) is not None


#============================================
def build_convert_command(converter: str, source_format: str, input_path: str) -> list[str]:
	"""
	Build the converter command line for one source format.
	"""
	reader = PANDOC_READERS.get(source_format)
	if reader is None:
		raise ValueError(f"No converter reader for format: {source_format}")
	return [converter, "-f", reader, "-t", "gfm", input_path]


#============================================
def convert_document(
	content: str,
	source_format: str,
	converter: str = DEFAULT_CONVERTER,
	runner=subprocess.run,
	log_fn=None,
) -> tuple[str, bool]:
	"""
	Convert README text to Markdown and report whether conversion happened.

	Args:
		content: README text in the source format.
		source_format: one of org, rst, txt.
		converter: converter executable name.
		runner: subprocess.run compatible callable.
		log_fn: optional callable for progress logging.

	Returns:
		(markdown, True) on success, or (content, False) when the converter
		is missing, exits non-zero or times out.
	"""
	fd, tmp_path = tempfile.mkstemp(prefix="star_dlp_readme_", suffix=f".{source_format}")
	os.close(fd)
	try:
		with open(tmp_path, "w", encoding="utf-8") as handle:
			handle.write(content)
		command = build_convert_command(converter, source_format, tmp_path)
		try:
			result = runner(
				command,
				capture_output=True,
				text=True,
				check=False,
				timeout=CONVERTER_TIMEOUT_SECONDS,
			)
		except FileNotFoundError:
			star_log.emit(log_fn, f"Converter {converter} not found; keeping raw {source_format} README.")
			return content, False
		except subprocess.TimeoutExpired:
			star_log.emit(log_fn, f"Converter {converter} timed out; keeping raw {source_format} README.")
			return content, False
		if result.returncode != 0:
			err_text = (result.stderr or "").strip() or "unknown converter error"
			star_log.emit(
				log_fn,
				f"Converter {converter} failed for {source_format} (exit={result.returncode}): {err_text}",
			)
			return content, False
		return result.stdout, True
	finally:
		if os.path.isfile(tmp_path):
			os.remove(tmp_path)


#============================================
def convert_to_markdown(
	content: str,
	source_format: str,
	converter: str = DEFAULT_CONVERTER,
	runner=subprocess.run,
	log_fn=None,
) -> str:
	"""
	Convert README text to Markdown, returning the raw text on failure.
	"""
	text, _ = convert_document(content, source_format, converter, runner, log_fn)
	return text
