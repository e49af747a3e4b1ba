import threading
import time
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone


STAR_MEDIA_TYPE = "application/vnd.github.star+json"
GITHUB_API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT_SECONDS = 30
# consult /rate_limit once every this many content requests
RATE_CHECK_INTERVAL = 15
LOW_REMAINING_THRESHOLD = 5
MAX_PROACTIVE_SLEEP_SECONDS = 10


#============================================
class RateLimitError(RuntimeError):
	"""
	Raised when GitHub API rate limits block further requests.
	"""


#============================================
@dataclass(frozen=True)
class RateLimitStatus:
	remaining: int
	reset_at: datetime

	def seconds_until_reset(self, now: datetime | None = None) -> int:
		if now is None:
			now = datetime.now(timezone.utc)
		return int((self.reset_at - now).total_seconds()) + 1


#============================================
def to_utc(value) -> datetime:
	"""
	Coerce a reset value (datetime, epoch seconds or ISO text) to aware UTC.
	"""
	if isinstance(value, datetime):
		if value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc)
	if isinstance(value, (int, float)):
		return datetime.fromtimestamp(float(value), tz=timezone.utc)
	if isinstance(value, str):
		return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
	raise RuntimeError(f"Unsupported rate-limit reset value: {value!r}")


#============================================
def core_rate_from_overview(overview):
	"""
	Find the core resource on a get_rate_limit() result.

	Older PyGithub exposes overview.core; newer releases nest it under
	overview.resources, either as an attribute or a dict key.
	"""
	core = getattr(overview, "core", None)
	if core is not None:
		return core
	resources = getattr(overview, "resources", None)
	if isinstance(resources, dict):
		core = resources.get("core")
	elif resources is not None:
		core = getattr(resources, "core", None)
	if core is None:
		raise RuntimeError("Rate limit data does not expose core resource fields.")
	return core


#============================================
def error_message(error: Exception) -> str:
	data = getattr(error, "data", None)
	if isinstance(data, dict):
		return str(data.get("message") or "")
	return str(data or "")


#============================================
def is_rate_limit_error(error: Exception) -> bool:
	"""
	Tell a rate-limit rejection apart from other 403 responses.

	GitHub answers both an exhausted quota and a blocked or private resource
	with 403. Only the first carries X-RateLimit-Remaining: 0 or a message
	mentioning the rate limit. 429 is always a rate limit.
	"""
	status = getattr(error, "status", None)
	if status == 429:
		return True
	if status != 403:
		return False
	if "rate limit" in error_message(error).lower():
		return True
	headers = getattr(error, "headers", None) or {}
	for key, value in headers.items():
		if str(key).lower() == "x-ratelimit-remaining":
			return str(value).strip() == "0"
	return False


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for star download use-cases.
	"""

	def __init__(self, token: str, log_fn=None, timeout: int = DEFAULT_TIMEOUT_SECONDS):
		self.log_fn = log_fn
		self.sleep_fn = time.sleep
		self._request_count = 0
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		self._lock = threading.Lock()
		try:
			from github import Auth
			from github import Github
			from github.GithubException import GithubException
		except ModuleNotFoundError as error:
			raise RuntimeError(
				"Missing dependency: PyGithub. Install it with pip install PyGithub."
			) from error
		self._github_exception_class = GithubException
		self.client = self._build_github_client(Github, Auth, token, timeout)

	#============================================
	def _build_github_client(self, github_class, auth_module, token: str, timeout: int):
		"""
		Create Github client with library retry disabled and a request timeout.
		"""
		if token:
			return github_class(auth=auth_module.Token(token), retry=None, timeout=timeout)
		return github_class(retry=None, timeout=timeout)

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Count one outbound request, overall and per endpoint.
		"""
		with self._lock:
			self._api_call_count += 1
			self._api_calls_by_context[context] = self._api_calls_by_context.get(context, 0) + 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		with self._lock:
			return {
				"api_call_count": self._api_call_count,
				"api_calls_by_context": dict(self._api_calls_by_context),
			}

	#============================================
	def rate_limit_status(self) -> RateLimitStatus:
		"""
		Query the core quota.
		"""
		self.record_api_call("GET /rate_limit")
		core = core_rate_from_overview(self.client.get_rate_limit())
		return RateLimitStatus(
			remaining=int(getattr(core, "remaining")),
			reset_at=to_utc(getattr(core, "reset")),
		)

	#============================================
	def throttle(self, context: str, force: bool = False) -> None:
		"""
		Periodically check the quota and pause briefly when it is nearly spent.

		Waits longer than MAX_PROACTIVE_SLEEP_SECONDS are not taken; the
		request proceeds and a later 403 surfaces as RateLimitError.
		"""
		with self._lock:
			self._request_count += 1
			due = force or self._request_count % RATE_CHECK_INTERVAL == 0
		if not due:
			return
		try:
			status = self.rate_limit_status()
		except Exception as error:
			self.log(f"Rate limit check ({context}) unavailable: {error}")
			return
		self.log(
			f"Rate limit check ({context}): remaining={status.remaining}, "
			+ f"reset_at={status.reset_at.isoformat()}"
		)
		if status.remaining > LOW_REMAINING_THRESHOLD:
			return
		wait_seconds = status.seconds_until_reset()
		if wait_seconds <= 0:
			return
		if wait_seconds > MAX_PROACTIVE_SLEEP_SECONDS:
			self.log(f"Rate limit is low ({status.remaining}); reset is {wait_seconds}s away, continuing.")
			return
		self.log(f"Rate limit is low ({status.remaining}); sleeping {wait_seconds}s until reset.")
		self.sleep_fn(wait_seconds)

	#============================================
	def rate_limit_error(self, error: Exception, context: str) -> RateLimitError:
		"""
		Build a RateLimitError carrying the current quota when it can be read.
		"""
		remaining_text = "unknown"
		reset_text = "unknown"
		try:
			status = self.rate_limit_status()
		except Exception as status_error:
			self.log(f"Rate limit status unavailable after {context}: {status_error}")
		else:
			remaining_text = str(status.remaining)
			reset_text = status.reset_at.isoformat()
		return RateLimitError(
			f"GitHub API rate limit exceeded while {context}; "
			+ f"remaining={remaining_text}; reset_at={reset_text}. "
			+ "Configure a token with star-dlp config --token for higher limits."
		)

	#============================================
	def call_api(self, context: str, call_fn):
		"""
		Run one API call, translating rate-limit failures.
		"""
		self.record_api_call(context)
		try:
			return call_fn()
		except self._github_exception_class as error:
			if is_rate_limit_error(error):
				raise self.rate_limit_error(error, context) from error
			raise

	#============================================
	def list_starred_page(self, user: str, page: int, per_page: int = 100) -> list[dict]:
		"""
		Fetch one page of a user's starred repositories with starred_at timestamps.
		"""
		self.throttle(f"list_starred {user} page {page}", force=(page == 1))
		headers = {
			"Accept": STAR_MEDIA_TYPE,
			"X-GitHub-Api-Version": GITHUB_API_VERSION,
		}
		_, data = self.call_api(
			f"GET /users/{user}/starred",
			lambda: self.client.requester.requestJsonAndCheck(
				"GET",
				f"/users/{user}/starred",
				parameters={"per_page": per_page, "page": page},
				headers=headers,
			),
		)
		if not isinstance(data, list):
			raise RuntimeError(f"Unexpected starred page payload for {user} page {page}")
		return data

	#============================================
	def get_repo(self, full_name: str):
		"""
		Get one lazy repository object by full name.
		"""
		return self.client.get_repo(full_name, lazy=True)

	#============================================
	def get_file_content(self, full_name: str, path: str) -> dict | None:
		"""
		Get one file content payload, or None when the path is missing.
		"""
		self.throttle(f"get_file_content {full_name} {path}")
		repo_obj = self.get_repo(full_name)
		try:
			content = self.call_api(
				f"GET /repos/{full_name}/contents/{path}",
				lambda: repo_obj.get_contents(path),
			)
		except self._github_exception_class as error:
			if getattr(error, "status", None) == 404:
				return None
			raise
		if isinstance(content, list):
			return None
		result = {
			"path": getattr(content, "path", path),
			"name": getattr(content, "name", path),
			"content": getattr(content, "content", "") or "",
			"encoding": getattr(content, "encoding", "base64") or "base64",
		}
		return result

	#============================================
	def list_root_entries(self, full_name: str) -> list[dict]:
		"""
		List entries in the repository root directory.
		"""
		self.throttle(f"list_root_entries {full_name}")
		repo_obj = self.get_repo(full_name)
		contents = self.call_api(
			f"GET /repos/{full_name}/contents/",
			lambda: repo_obj.get_contents(""),
		)
		if not isinstance(contents, list):
			contents = [contents]
		entries = []
		for entry in contents:
			entries.append({
				"type": getattr(entry, "type", ""),
				"name": getattr(entry, "name", ""),
				"path": getattr(entry, "path", ""),
			})
		return entries
