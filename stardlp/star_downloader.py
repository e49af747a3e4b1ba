import json
import os
import time
from dataclasses import dataclass
from dataclasses import field

from stardlp import pagination
from stardlp import readme_registry
from stardlp import readme_resolver
from stardlp import star_log
from stardlp import star_persistence
from stardlp import star_settings
from stardlp import starred_item
from stardlp import watermark_store
from stardlp import worker_pool


#============================================
@dataclass
class DownloadReport:
	found: int = 0
	summary: worker_pool.PoolSummary = field(default_factory=worker_pool.PoolSummary)
	watermark: str | None = None
	watermark_saved: bool = False


#============================================
def resolve_dirs(settings: dict) -> tuple[str, str, str]:
	"""
	Return absolute output, JSON and Markdown directories from settings.
	"""
	dirs = []
	for key in ("output_dir", "json_dir", "markdown_dir"):
		value = star_settings.get_setting_str(settings, key, "")
		if not value:
			raise RuntimeError(f"Setting {key} is empty")
		dirs.append(os.path.abspath(os.path.expanduser(value)))
	return dirs[0], dirs[1], dirs[2]


#============================================
def item_name(item: starred_item.StarredItem) -> str:
	return item.full_name


#============================================
def download_stars(
	client,
	settings: dict,
	username: str,
	thread_count: int = worker_pool.DEFAULT_THREAD_COUNT,
	skip_readme: bool = False,
	retry_count: int = worker_pool.DEFAULT_RETRY_COUNT,
	retry_delay: float = worker_pool.DEFAULT_RETRY_DELAY,
	log_fn=None,
	converter_fn=None,
	sleep_fn=time.sleep,
) -> DownloadReport:
	"""
	Fetch stars newer than the watermark and persist each one.

	Pagination errors propagate and leave the watermark untouched. The
	watermark is only advanced when every new item was persisted, so items
	that exhausted their retries are picked up again by the next run.
	"""
	worker_pool.validate_pool_options(thread_count, retry_count, retry_delay)
	output_dir, json_dir, markdown_dir = resolve_dirs(settings)
	star_log.emit(log_fn, f"Downloading stars for user: {username}")
	watermark = watermark_store.read_watermark(output_dir)
	if watermark:
		star_log.emit(
			log_fn,
			f"Last download stopped at repository: {watermark}. Will only fetch stars added after this repo.",
		)
	else:
		star_log.emit(log_fn, "No previous download record found. Will download all stars.")

	walk = pagination.walk_starred(
		lambda page, per_page: client.list_starred_page(username, page, per_page),
		watermark,
		log_fn=log_fn,
	)
	report = DownloadReport(found=len(walk.items), watermark=walk.newest_full_name)
	star_log.emit(log_fn, f"Found {report.found} new starred repositories to process")

	tracker = worker_pool.ProgressTracker(log_fn=log_fn)
	registry = readme_registry.ReadmeRegistry(
		readme_registry.registry_path(output_dir),
		lock=tracker.locked(),
	)

	def process_item(item: starred_item.StarredItem) -> None:
		star_persistence.write_star_json(json_dir, item)
		readme = None
		if not skip_readme:
			readme = readme_resolver.resolve_readme(
				client,
				item.full_name,
				converter_fn=converter_fn,
				log_fn=tracker.log,
			)
		_, wrote = star_persistence.write_star_markdown(markdown_dir, item, readme)
		if wrote and readme is not None:
			registry.add(item.full_name)

	report.summary = worker_pool.run_worker_pool(
		walk.items,
		item_name,
		process_item,
		thread_count=thread_count,
		retry_count=retry_count,
		retry_delay=retry_delay,
		log_fn=log_fn,
		sleep_fn=sleep_fn,
		tracker=tracker,
	)

	if walk.newest_full_name is None:
		star_log.emit(log_fn, "No starred repositories returned; watermark unchanged.")
	elif report.summary.failed > 0:
		star_log.emit(
			log_fn,
			f"Skipping watermark update: {report.summary.failed} repositories failed after retries.",
		)
	else:
		watermark_store.write_watermark(output_dir, walk.newest_full_name)
		report.watermark_saved = True
		star_log.emit(log_fn, f"Saved latest repository name: {walk.newest_full_name}")
	return report


#============================================
def scan_json_snapshots(json_dir: str, log_fn=None) -> list[starred_item.StarredItem]:
	"""
	Load every saved star snapshot under json_dir, skipping unreadable files.
	"""
	items = []
	if not os.path.isdir(json_dir):
		return items
	for root, dir_names, file_names in os.walk(json_dir):
		dir_names.sort()
		for file_name in sorted(file_names):
			if not file_name.endswith(".json"):
				continue
			path = os.path.join(root, file_name)
			try:
				with open(path, "r", encoding="utf-8") as handle:
					payload = json.load(handle)
				items.append(starred_item.starred_item_from_payload(payload))
			except (OSError, ValueError) as error:
				star_log.emit(log_fn, f"Error parsing JSON file {path}: {error}")
	return items


#============================================
def download_readmes(
	client,
	settings: dict,
	force: bool = False,
	thread_count: int = worker_pool.DEFAULT_THREAD_COUNT,
	retry_count: int = worker_pool.DEFAULT_RETRY_COUNT,
	retry_delay: float = worker_pool.DEFAULT_RETRY_DELAY,
	log_fn=None,
	converter_fn=None,
	sleep_fn=time.sleep,
) -> dict:
	"""
	Fetch READMEs for saved stars and fold them into their Markdown documents.
	"""
	worker_pool.validate_pool_options(thread_count, retry_count, retry_delay)
	output_dir, json_dir, markdown_dir = resolve_dirs(settings)
	tracker = worker_pool.ProgressTracker(log_fn=log_fn)
	registry = readme_registry.ReadmeRegistry(
		readme_registry.registry_path(output_dir),
		lock=tracker.locked(),
	)

	star_log.emit(log_fn, f"Scanning JSON snapshots in {json_dir}")
	targets = []
	seen = set()
	skipped = 0
	for item in scan_json_snapshots(json_dir, log_fn):
		if item.full_name in seen:
			continue
		seen.add(item.full_name)
		if (not force) and registry.contains(item.full_name):
			skipped += 1
			continue
		targets.append(item)
	star_log.emit(
		log_fn,
		f"Found {len(targets)} repositories needing README download ({skipped} already downloaded)",
	)

	def process_item(item: starred_item.StarredItem) -> None:
		readme = readme_resolver.resolve_readme(
			client,
			item.full_name,
			converter_fn=converter_fn,
			log_fn=tracker.log,
		)
		if readme is None:
			raise readme_resolver.ReadmeNotFoundError(f"No README found for {item.full_name}")
		path, wrote = star_persistence.write_star_markdown(markdown_dir, item, readme)
		if not wrote:
			star_persistence.append_readme_section(path, readme, replace=force)
		registry.add(item.full_name)

	summary = worker_pool.run_worker_pool(
		targets,
		item_name,
		process_item,
		thread_count=thread_count,
		retry_count=retry_count,
		retry_delay=retry_delay,
		log_fn=log_fn,
		sleep_fn=sleep_fn,
		tracker=tracker,
		non_retryable=(readme_resolver.ReadmeNotFoundError,),
	)
	result = {
		"success": summary.succeeded,
		"failed": summary.failed,
		"skipped": skipped,
	}
	return result
