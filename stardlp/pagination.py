from dataclasses import dataclass
from dataclasses import field
from datetime import datetime

from stardlp import star_log
from stardlp import starred_item


DEFAULT_PER_PAGE = 100


#============================================
@dataclass
class PaginationResult:
	items: list = field(default_factory=list)
	newest_full_name: str | None = None
	newest_starred_at: datetime | None = None
	pages_fetched: int = 0
	reached_watermark: bool = False


#============================================
def walk_starred(
	fetch_page_fn,
	watermark: str | None,
	per_page: int = DEFAULT_PER_PAGE,
	log_fn=None,
) -> PaginationResult:
	"""
	Walk starred pages newest-first until an empty page or the watermark.

	fetch_page_fn(page, per_page) returns the raw payloads of one page. The
	first item of page 1 becomes the new watermark before any filtering.
	Errors raised by fetch_page_fn propagate and abort the walk.
	"""
	result = PaginationResult()
	page = 1
	while True:
		star_log.emit(log_fn, f"Fetching page {page}...")
		payloads = fetch_page_fn(page, per_page)
		result.pages_fetched += 1
		if not payloads:
			break
		if page == 1:
			result.newest_full_name = starred_item.payload_full_name(payloads[0])
		page_items = []
		for payload in payloads:
			try:
				page_items.append(starred_item.starred_item_from_payload(payload))
			except ValueError as error:
				star_log.emit(log_fn, f"Skipping malformed starred payload on page {page}: {error}")
		if page == 1 and page_items:
			# first payload may lack full_name entirely
			if result.newest_full_name is None:
				result.newest_full_name = page_items[0].full_name
			if page_items[0].full_name == result.newest_full_name:
				result.newest_starred_at = page_items[0].starred_at
		kept = 0
		for item in page_items:
			if watermark and item.full_name == watermark:
				result.reached_watermark = True
				break
			result.items.append(item)
			kept += 1
		star_log.emit(log_fn, f"  - Got {kept} new repositories from page {page}")
		if result.reached_watermark:
			star_log.emit(
				log_fn,
				f"  - Reached previously downloaded repository: {watermark}. Stopping pagination.",
			)
			break
		page += 1
	return result
