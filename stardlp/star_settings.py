import os

import yaml


DEFAULT_CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".star-dlp")
DEFAULT_CONFIG_FILE = os.path.join(DEFAULT_CONFIG_DIR, "config.yaml")
SETTING_KEYS = ("github_token", "output_dir", "json_dir", "markdown_dir")


#============================================
def default_settings(config_dir: str = DEFAULT_CONFIG_DIR) -> dict:
	"""
	Build the default settings mapping rooted at one config directory.
	"""
	stars_dir = os.path.join(config_dir, "stars")
	settings = {
		"github_token": None,
		"output_dir": stars_dir,
		"json_dir": os.path.join(stars_dir, "json"),
		"markdown_dir": os.path.join(stars_dir, "markdown"),
	}
	return settings


#============================================
def load_settings(path_text: str = DEFAULT_CONFIG_FILE) -> tuple[dict, str]:
	"""
	Load YAML settings merged over defaults and return them with resolved path.
	"""
	resolved_path = os.path.abspath(os.path.expanduser(path_text))
	settings = default_settings(os.path.dirname(resolved_path))
	if not os.path.isfile(resolved_path):
		return settings, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle.read())
	if data is None:
		return settings, resolved_path
	if not isinstance(data, dict):
		raise RuntimeError(f"Settings file must contain a mapping: {resolved_path}")
	for key in SETTING_KEYS:
		value = data.get(key)
		if value is not None:
			settings[key] = value
	return settings, resolved_path


#============================================
def save_settings(settings: dict, path_text: str = DEFAULT_CONFIG_FILE) -> str:
	"""
	Write settings as YAML, creating the config directory on demand.
	"""
	resolved_path = os.path.abspath(os.path.expanduser(path_text))
	config_dir = os.path.dirname(resolved_path)
	if config_dir:
		os.makedirs(config_dir, exist_ok=True)
	payload = {key: settings.get(key) for key in SETTING_KEYS}
	with open(resolved_path, "w", encoding="utf-8") as handle:
		yaml.safe_dump(payload, handle, default_flow_style=False, sort_keys=False)
	return resolved_path


#============================================
def apply_overrides(settings: dict, **values) -> dict:
	"""
	Return a copy of settings with non-None override values applied.
	"""
	updated = dict(settings)
	for key, value in values.items():
		if key not in SETTING_KEYS:
			raise KeyError(f"Unknown setting: {key}")
		if value is None:
			continue
		updated[key] = value
	return updated


#============================================
def ensure_directories(settings: dict) -> list[str]:
	"""
	Create output, JSON and Markdown directories if absent.
	"""
	created = []
	for key in ("output_dir", "json_dir", "markdown_dir"):
		directory = os.path.abspath(os.path.expanduser(get_setting_str(settings, key, "")))
		os.makedirs(directory, exist_ok=True)
		created.append(directory)
	return created


#============================================
def get_setting_str(settings: dict, key: str, default_value: str) -> str:
	"""
	Read a string setting with fallback.
	"""
	value = settings.get(key, default_value)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def resolve_github_token(settings: dict) -> str:
	"""
	Resolve the API token from settings, then the GITHUB_TOKEN environment.
	"""
	token = get_setting_str(settings, "github_token", "")
	if token:
		return token
	return (os.environ.get("GITHUB_TOKEN", "") or "").strip()


#============================================
def mask_token(token: str) -> str:
	"""
	Hide all but the last four characters of a token for display.
	"""
	if not token:
		return "Not set"
	if len(token) <= 4:
		return "*" * len(token)
	return "*" * (len(token) - 4) + token[-4:]
