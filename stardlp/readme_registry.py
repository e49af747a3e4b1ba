import os
import threading


REGISTRY_FILENAME = "downloaded_readmes.txt"


#============================================
def registry_path(output_dir: str) -> str:
	"""
	Return the downloaded-README registry path under the output directory.
	"""
	return os.path.join(os.path.abspath(os.path.expanduser(output_dir)), REGISTRY_FILENAME)


#============================================
class ReadmeRegistry:
	"""
	Append-only record of repositories whose README was already fetched.
	"""

	def __init__(self, path: str, lock=None):
		self.path = path
		self._lock = lock if lock is not None else threading.Lock()
		self._names = self.load()

	#============================================
	def load(self) -> set[str]:
		names = set()
		if not os.path.isfile(self.path):
			return names
		with open(self.path, "r", encoding="utf-8") as handle:
			for line in handle:
				name = line.strip()
				if name:
					names.add(name)
		return names

	#============================================
	def contains(self, full_name: str) -> bool:
		with self._lock:
			return full_name in self._names

	#============================================
	def add(self, full_name: str) -> bool:
		"""
		Append one name; return False when it was already registered.
		"""
		name = (full_name or "").strip()
		if not name:
			raise ValueError("registry entries must be non-empty repository names")
		with self._lock:
			if name in self._names:
				return False
			dir_name = os.path.dirname(self.path)
			if dir_name:
				os.makedirs(dir_name, exist_ok=True)
			with open(self.path, "a", encoding="utf-8") as handle:
				handle.write(name)
				handle.write("\n")
			self._names.add(name)
			return True

	#============================================
	def names(self) -> list[str]:
		with self._lock:
			return sorted(self._names)
