"""Bounded-concurrency worker pool with per-item retry and progress tracking.

Items are drained from one FIFO queue by a fixed number of threads. Every item
ends as exactly one JobOutcome, either success or exhausted, so a failing item
never stops the pool.
"""

import queue
import threading
import time
from dataclasses import dataclass
from dataclasses import field

from stardlp import star_log


DEFAULT_THREAD_COUNT = 16
DEFAULT_RETRY_COUNT = 5
DEFAULT_RETRY_DELAY = 1.0
STATUS_SUCCESS = "success"
STATUS_EXHAUSTED = "exhausted"


#============================================
@dataclass(frozen=True)
class JobOutcome:
	name: str
	status: str
	attempts: int
	error: str = ""

	@property
	def succeeded(self) -> bool:
		return self.status == STATUS_SUCCESS


#============================================
@dataclass
class PoolSummary:
	total: int = 0
	completed: int = 0
	succeeded: int = 0
	failed: int = 0
	outcomes: list = field(default_factory=list)


#============================================
class ProgressTracker:
	"""
	Thread-safe owner of completion counters, outcomes, and progress output.
	"""

	def __init__(self, total: int = 0, log_fn=None):
		self._lock = threading.Lock()
		self._summary = PoolSummary(total=total)
		self.log_fn = log_fn

	#============================================
	def locked(self) -> threading.Lock:
		"""
		Expose the shared lock for other resources that must serialize with output.
		"""
		return self._lock

	#============================================
	def set_total(self, total: int) -> None:
		with self._lock:
			self._summary.total = total

	#============================================
	def log(self, message: str) -> None:
		with self._lock:
			star_log.emit(self.log_fn, message)

	#============================================
	def record(self, outcome: JobOutcome) -> int:
		"""
		Count one finished item and emit a running-total line.
		"""
		with self._lock:
			summary = self._summary
			summary.completed += 1
			if outcome.succeeded:
				summary.succeeded += 1
			else:
				summary.failed += 1
			summary.outcomes.append(outcome)
			percent = 100.0
			if summary.total > 0:
				percent = summary.completed * 100.0 / summary.total
			status_text = "Completed" if outcome.succeeded else "Failed"
			star_log.emit(
				self.log_fn,
				f"[{summary.completed}/{summary.total}] ({percent:.1f}%) {status_text}: {outcome.name}",
			)
			return summary.completed

	#============================================
	def snapshot(self) -> PoolSummary:
		with self._lock:
			summary = self._summary
			return PoolSummary(
				total=summary.total,
				completed=summary.completed,
				succeeded=summary.succeeded,
				failed=summary.failed,
				outcomes=list(summary.outcomes),
			)


#============================================
def validate_pool_options(thread_count: int, retry_count: int, retry_delay: float) -> None:
	"""
	Raise ValueError for pool options outside their valid ranges.
	"""
	if thread_count < 1:
		raise ValueError(f"thread_count must be >= 1; got {thread_count}")
	if retry_count < 1:
		raise ValueError(f"retry_count must be >= 1; got {retry_count}")
	if retry_delay < 0:
		raise ValueError(f"retry_delay must be >= 0; got {retry_delay}")


#============================================
def run_with_retry(
	process_fn,
	item,
	name: str,
	retry_count: int = DEFAULT_RETRY_COUNT,
	retry_delay: float = DEFAULT_RETRY_DELAY,
	log_fn=None,
	sleep_fn=time.sleep,
	non_retryable: tuple = (),
) -> JobOutcome:
	"""
	Run process_fn(item) up to retry_count times with a fixed delay between tries.

	Args:
		process_fn: callable doing the work; any exception marks a failed attempt.
		item: payload handed to process_fn.
		name: display name for log lines.
		retry_count: maximum attempts, at least 1.
		retry_delay: seconds to sleep between attempts.
		log_fn: optional callable for progress logging.
		sleep_fn: time.sleep compatible callable.
		non_retryable: exception types that end the loop on first occurrence.

	Returns:
		JobOutcome with status success or exhausted.
	"""
	attempt = 0
	last_error = ""
	while attempt < retry_count:
		attempt += 1
		try:
			process_fn(item)
			return JobOutcome(name=name, status=STATUS_SUCCESS, attempts=attempt)
		except non_retryable as error:
			last_error = str(error) or type(error).__name__
			star_log.emit(log_fn, f"Skipping {name}: {last_error}")
			return JobOutcome(name=name, status=STATUS_EXHAUSTED, attempts=attempt, error=last_error)
		except Exception as error:
			last_error = f"{type(error).__name__}: {error}"
			if attempt >= retry_count:
				break
			star_log.emit(
				log_fn,
				f"Error processing {name} (attempt {attempt}/{retry_count}): {last_error}; "
				+ f"retry in {retry_delay}s",
			)
			sleep_fn(retry_delay)
	star_log.emit(log_fn, f"Failed to process {name} after {attempt} attempts: {last_error}")
	return JobOutcome(name=name, status=STATUS_EXHAUSTED, attempts=attempt, error=last_error)


#============================================
def run_worker_pool(
	items,
	name_fn,
	process_fn,
	thread_count: int = DEFAULT_THREAD_COUNT,
	retry_count: int = DEFAULT_RETRY_COUNT,
	retry_delay: float = DEFAULT_RETRY_DELAY,
	log_fn=None,
	sleep_fn=time.sleep,
	tracker: ProgressTracker | None = None,
	non_retryable: tuple = (),
) -> PoolSummary:
	"""
	Process every item on a bounded set of threads and return the summary.

	All workers are joined before returning, so summary.completed equals
	summary.total. Completion order across workers is not defined.
	"""
	validate_pool_options(thread_count, retry_count, retry_delay)
	item_list = list(items)
	if tracker is None:
		tracker = ProgressTracker(log_fn=log_fn)
	tracker.set_total(len(item_list))
	if not item_list:
		return tracker.snapshot()

	work_queue = queue.Queue()
	for item in item_list:
		work_queue.put(item)

	def retry_log(message: str) -> None:
		tracker.log(message)

	def worker() -> None:
		while True:
			try:
				item = work_queue.get_nowait()
			except queue.Empty:
				return
			try:
				try:
					name = name_fn(item)
				except Exception:
					name = repr(item)
				outcome = run_with_retry(
					process_fn,
					item,
					name,
					retry_count=retry_count,
					retry_delay=retry_delay,
					log_fn=retry_log,
					sleep_fn=sleep_fn,
					non_retryable=non_retryable,
				)
				tracker.record(outcome)
			finally:
				work_queue.task_done()

	worker_count = min(thread_count, len(item_list))
	threads = []
	for index in range(worker_count):
		thread = threading.Thread(target=worker, name=f"star-dlp-worker-{index + 1}", daemon=True)
		thread.start()
		threads.append(thread)
	for thread in threads:
		thread.join()
	return tracker.snapshot()
