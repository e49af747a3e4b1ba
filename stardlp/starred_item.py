from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone


#============================================
def utc_now() -> datetime:
	"""
	Return UTC now as a timezone-aware datetime.
	"""
	return datetime.now(timezone.utc)


#============================================
def parse_iso(ts) -> datetime | None:
	"""
	Parse an ISO timestamp into a timezone-aware datetime, or None when empty.
	"""
	if ts is None:
		return None
	if isinstance(ts, datetime):
		if ts.tzinfo is None:
			return ts.replace(tzinfo=timezone.utc)
		return ts
	text = str(ts).strip()
	if not text:
		return None
	parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


#============================================
@dataclass(frozen=True)
class StarredItem:
	"""
	Normalized record of one starred repository at fetch time.
	"""
	full_name: str
	starred_at: datetime | None = None
	description: str = ""
	stargazers_count: int = 0
	forks_count: int = 0
	language: str = ""
	created_at: str = ""
	updated_at: str = ""
	html_url: str = ""
	topics: tuple[str, ...] = ()
	raw: dict = field(default_factory=dict, compare=False, hash=False)

	@property
	def owner(self) -> str:
		return self.full_name.split("/", 1)[0]

	@property
	def repo_name(self) -> str:
		parts = self.full_name.split("/", 1)
		if len(parts) < 2:
			return parts[0]
		return parts[1]

	def star_date(self) -> datetime:
		"""
		Return the starred timestamp, falling back to now when absent.
		"""
		if self.starred_at is None:
			return utc_now()
		return self.starred_at


#============================================
def payload_full_name(payload) -> str | None:
	"""
	Read full_name from either upstream shape without validating the rest.
	"""
	if not isinstance(payload, dict):
		return None
	repo = payload.get("repo")
	if not isinstance(repo, dict):
		repo = payload
	full_name = str(repo.get("full_name") or "").strip()
	return full_name or None


#============================================
def starred_item_from_payload(payload: dict) -> StarredItem:
	"""
	Normalize either upstream shape into one StarredItem.

	The star media type returns {"starred_at": ..., "repo": {...}}, while the
	plain listing and locally saved snapshots carry repository fields at the top
	level with an optional starred_at next to them.
	"""
	if not isinstance(payload, dict):
		raise ValueError(f"Starred payload must be a mapping, got {type(payload).__name__}")
	repo = payload.get("repo")
	if not isinstance(repo, dict):
		repo = payload
	full_name = payload_full_name(payload)
	if full_name is None:
		raise ValueError("Starred payload is missing full_name")
	starred_at = payload.get("starred_at") or repo.get("starred_at")
	topics = repo.get("topics") or []
	item = StarredItem(
		full_name=full_name,
		starred_at=parse_iso(starred_at),
		description=repo.get("description") or "",
		stargazers_count=int(repo.get("stargazers_count") or 0),
		forks_count=int(repo.get("forks_count") or 0),
		language=repo.get("language") or "",
		created_at=str(repo.get("created_at") or ""),
		updated_at=str(repo.get("updated_at") or ""),
		html_url=repo.get("html_url") or f"https://github.com/{full_name}",
		topics=tuple(str(topic) for topic in topics),
		raw=dict(payload),
	)
	return item
