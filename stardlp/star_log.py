from datetime import datetime

import rich.console


RICH_CONSOLE = rich.console.Console()


#============================================
def pick_style(message: str) -> str:
	"""
	Choose a console style from keywords in one message.
	"""
	lower = message.lower()
	if ("failed" in lower) or ("error" in lower):
		return "bold red"
	if ("retry" in lower) or ("skipping" in lower) or ("rate limit" in lower):
		return "yellow"
	if ("wrote " in lower) or ("saved" in lower) or ("completed" in lower) or ("success" in lower):
		return "green"
	return "cyan"


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[star-dlp {now_text}] {message}"
	RICH_CONSOLE.print(line, style=pick_style(message), markup=False, highlight=False)


#============================================
def emit(log_fn, message: str) -> None:
	"""
	Forward one message to an optional log callable.
	"""
	if log_fn is not None:
		log_fn(message)
