import os
import tempfile


WATERMARK_FILENAME = "last_downloaded_repo.txt"


#============================================
def watermark_path(output_dir: str) -> str:
	"""
	Return the watermark file path under the output directory.
	"""
	return os.path.join(os.path.abspath(os.path.expanduser(output_dir)), WATERMARK_FILENAME)


#============================================
def read_watermark(output_dir: str) -> str | None:
	"""
	Read the last downloaded repository name, or None on a first run.
	"""
	path = watermark_path(output_dir)
	if not os.path.isfile(path):
		return None
	with open(path, "r", encoding="utf-8") as handle:
		value = handle.read().strip()
	if not value:
		return None
	return value.splitlines()[0].strip()


#============================================
def write_watermark(output_dir: str, full_name: str) -> str:
	"""
	Overwrite the watermark file atomically with one repository name.
	"""
	value = (full_name or "").strip()
	if not value:
		raise ValueError("watermark value must be a non-empty repository name")
	path = watermark_path(output_dir)
	dir_name = os.path.dirname(path)
	os.makedirs(dir_name, exist_ok=True)
	# temp file in same directory, then rename
	fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".txt.tmp")
	os.close(fd)
	try:
		with open(tmp_path, "w", encoding="utf-8") as handle:
			handle.write(value)
			handle.write("\n")
		os.replace(tmp_path, path)
	finally:
		if os.path.isfile(tmp_path):
			os.remove(tmp_path)
	return path
