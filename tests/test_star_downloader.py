import json
import os

from fake_github import FakeGitHub
from stardlp import readme_registry
from stardlp import star_downloader
from stardlp import star_settings
from stardlp import watermark_store


#============================================
def star(full_name: str, starred_at: str = "2026-03-04T05:06:07Z") -> dict:
	return {
		"starred_at": starred_at,
		"repo": {
			"full_name": full_name,
			"description": f"{full_name} description",
			"stargazers_count": 1,
			"forks_count": 0,
			"language": "Python",
			"html_url": f"https://github.com/{full_name}",
			"topics": [],
		},
	}


#============================================
def make_settings(tmp_path) -> dict:
	settings = star_settings.default_settings(str(tmp_path))
	star_settings.ensure_directories(settings)
	return settings


#============================================
def tag_converter(content: str, source_format: str) -> tuple[str, bool]:
	return f"converted:{content}", True


#============================================
def markdown_path(settings: dict, full_name: str) -> str:
	owner, repo = full_name.split("/")
	return os.path.join(settings["markdown_dir"], "2026", "03", f"20260304.{owner}.{repo}.md")


#============================================
def test_download_stars_incremental_run(tmp_path) -> None:
	"""
	Only items before the watermark are saved and the watermark advances.
	"""
	settings = make_settings(tmp_path)
	watermark_store.write_watermark(settings["output_dir"], "acme/widgets")
	client = FakeGitHub(
		pages=[[star("foo/bar"), star("acme/widgets"), star("old/one")], [star("older/two")]],
		files={"foo/bar": {"README.rst": "Title\n"}},
	)
	report = star_downloader.download_stars(
		client, settings, "alice", thread_count=4, retry_delay=0, converter_fn=tag_converter,
	)
	assert report.found == 1
	assert report.summary.completed == 1
	assert report.watermark_saved is True
	assert client.page_requests == [1]
	assert watermark_store.read_watermark(settings["output_dir"]) == "foo/bar"

	json_path = os.path.join(settings["json_dir"], "2026", "03", "20260304.foo.bar.json")
	with open(json_path, "r", encoding="utf-8") as handle:
		assert json.load(handle)["repo"]["full_name"] == "foo/bar"
	with open(markdown_path(settings, "foo/bar"), "r", encoding="utf-8") as handle:
		text = handle.read()
	assert "> README converted from rst format." in text
	assert "converted:Title" in text
	assert not os.path.exists(markdown_path(settings, "old/one"))

	registry = readme_registry.ReadmeRegistry(readme_registry.registry_path(settings["output_dir"]))
	assert registry.names() == ["foo/bar"]


#============================================
def test_download_stars_skip_readme_writes_description(tmp_path) -> None:
	settings = make_settings(tmp_path)
	client = FakeGitHub(pages=[[star("a/one"), star("a/two")]], files={"a/one": {"README.md": "# hi"}})
	report = star_downloader.download_stars(client, settings, "alice", skip_readme=True, retry_delay=0)
	assert report.summary.succeeded == 2
	assert client.content_requests == []
	with open(markdown_path(settings, "a/one"), "r", encoding="utf-8") as handle:
		assert "## Description" in handle.read()
	assert watermark_store.read_watermark(settings["output_dir"]) == "a/one"


#============================================
def test_download_stars_failures_hold_back_watermark(tmp_path) -> None:
	"""
	Items exhausting their retries keep the previous watermark in place.
	"""
	settings = make_settings(tmp_path)
	watermark_store.write_watermark(settings["output_dir"], "old/mark")

	class BrokenClient(FakeGitHub):
		def get_file_content(self, full_name, path):
			raise AssertionError("unreachable")

	client = BrokenClient(pages=[[star("a/one")]])
	sleeps = []
	# the markdown directory is a file, so every markdown write fails
	blocker = os.path.join(settings["markdown_dir"], "2026")
	with open(blocker, "w", encoding="utf-8") as handle:
		handle.write("not a directory")
	report = star_downloader.download_stars(
		client, settings, "alice", skip_readme=True, retry_count=3, retry_delay=0.5,
		sleep_fn=sleeps.append,
	)
	assert report.summary.failed == 1
	assert report.summary.outcomes[0].attempts == 3
	assert sleeps == [0.5, 0.5]
	assert report.watermark_saved is False
	assert watermark_store.read_watermark(settings["output_dir"]) == "old/mark"


#============================================
def test_download_stars_nothing_new_keeps_watermark(tmp_path) -> None:
	settings = make_settings(tmp_path)
	watermark_store.write_watermark(settings["output_dir"], "acme/widgets")
	client = FakeGitHub(pages=[[star("acme/widgets")]])
	report = star_downloader.download_stars(client, settings, "alice", skip_readme=True)
	assert report.found == 0
	assert report.summary.total == 0
	assert watermark_store.read_watermark(settings["output_dir"]) == "acme/widgets"


#============================================
def write_snapshot(settings: dict, full_name: str) -> None:
	owner, repo = full_name.split("/")
	directory = os.path.join(settings["json_dir"], "2026", "03")
	os.makedirs(directory, exist_ok=True)
	with open(os.path.join(directory, f"20260304.{owner}.{repo}.json"), "w", encoding="utf-8") as handle:
		json.dump(star(full_name), handle)


#============================================
def test_download_readmes_appends_and_registers(tmp_path) -> None:
	"""
	Existing Markdown gets a README section and the repo is registered.
	"""
	settings = make_settings(tmp_path)
	write_snapshot(settings, "foo/bar")
	write_snapshot(settings, "no/readme")
	bad_path = os.path.join(settings["json_dir"], "broken.json")
	with open(bad_path, "w", encoding="utf-8") as handle:
		handle.write("{not json")
	client = FakeGitHub(files={"foo/bar": {"README.md": "# Foo"}})
	star_downloader.download_stars(
		FakeGitHub(pages=[[star("foo/bar")]]), settings, "alice", skip_readme=True,
	)
	messages = []
	result = star_downloader.download_readmes(
		client, settings, retry_delay=0, log_fn=messages.append, converter_fn=tag_converter,
	)
	assert result == {"success": 1, "failed": 1, "skipped": 0}
	assert any("broken.json" in line for line in messages)
	with open(markdown_path(settings, "foo/bar"), "r", encoding="utf-8") as handle:
		text = handle.read()
	assert "## Description" in text
	assert text.endswith("## README\n\n# Foo\n")
	assert not os.path.exists(markdown_path(settings, "no/readme"))

	second = star_downloader.download_readmes(client, settings, retry_delay=0)
	assert second == {"success": 0, "failed": 1, "skipped": 1}


#============================================
def test_download_readmes_force_refetches(tmp_path) -> None:
	"""
	A forced run replaces the stored README section with the fresh content.
	"""
	settings = make_settings(tmp_path)
	write_snapshot(settings, "foo/bar")
	client = FakeGitHub(files={"foo/bar": {"README.md": "# Old"}})
	star_downloader.download_readmes(client, settings, retry_delay=0)
	client.files["foo/bar"]["README.md"] = "# New"
	forced = star_downloader.download_readmes(client, settings, force=True, retry_delay=0)
	assert forced == {"success": 1, "failed": 0, "skipped": 0}
	with open(markdown_path(settings, "foo/bar"), "r", encoding="utf-8") as handle:
		text = handle.read()
	assert text.count("## README") == 1
	assert "# Old" not in text
	assert text.endswith("## README\n\n# New\n")
	assert "## Topics" in text
