import json
import os

from stardlp.readme_resolver import ReadmeResult
from stardlp.starred_item import StarredItem


README_HEADING = "## README"


#============================================
def build_artifact_path(base_dir: str, item: StarredItem, extension: str) -> str:
	"""
	Build <base>/<YYYY>/<MM>/<YYYYMMDD>.<owner>.<repo>.<ext> from the star date.
	"""
	star_date = item.star_date()
	filename = f"{star_date.strftime('%Y%m%d')}.{item.owner}.{item.repo_name}.{extension}"
	directory = os.path.join(
		os.path.abspath(os.path.expanduser(base_dir)),
		star_date.strftime("%Y"),
		star_date.strftime("%m"),
	)
	return os.path.join(directory, filename)


#============================================
def write_star_json(json_dir: str, item: StarredItem) -> str:
	"""
	Write the full raw payload, replacing any earlier snapshot.
	"""
	path = build_artifact_path(json_dir, item, "json")
	os.makedirs(os.path.dirname(path), exist_ok=True)
	with open(path, "w", encoding="utf-8") as handle:
		json.dump(item.raw, handle, ensure_ascii=False, indent=2)
		handle.write("\n")
	return path


#============================================
def format_note(readme: ReadmeResult) -> str:
	if readme.converted:
		return f"> README converted from {readme.format} format."
	return f"> README in {readme.format} format (not converted)."


#============================================
def render_readme_section(readme: ReadmeResult) -> str:
	"""
	Render the README heading, optional format note, and body.
	"""
	lines = [README_HEADING, ""]
	if readme.needs_note:
		lines.append(format_note(readme))
		lines.append("")
	lines.append(readme.content.rstrip())
	return "\n".join(lines) + "\n"


#============================================
def render_star_markdown(item: StarredItem, readme: ReadmeResult | None = None) -> str:
	"""
	Render the Markdown document for one starred repository.
	"""
	starred_at = item.starred_at.isoformat() if item.starred_at is not None else "N/A"
	lines = [
		f"# {item.full_name}",
		"",
		item.description,
		"",
		f"- **Stars**: {item.stargazers_count}",
		f"- **Forks**: {item.forks_count}",
		f"- **Language**: {item.language}",
		f"- **Created at**: {item.created_at}",
		f"- **Updated at**: {item.updated_at}",
		f"- **Starred at**: {starred_at}",
		"",
		f"[View on GitHub]({item.html_url})",
		"",
		"## Topics",
		"",
	]
	for topic in item.topics:
		lines.append(f"- {topic}")
	lines.append("")
	text = "\n".join(lines) + "\n"
	if readme is not None:
		return text + render_readme_section(readme)
	return text + "## Description\n\n" + item.description + "\n"


#============================================
def write_star_markdown(
	markdown_dir: str,
	item: StarredItem,
	readme: ReadmeResult | None = None,
) -> tuple[str, bool]:
	"""
	Write the Markdown document only when it does not exist yet.
	"""
	path = build_artifact_path(markdown_dir, item, "md")
	if os.path.exists(path):
		return path, False
	os.makedirs(os.path.dirname(path), exist_ok=True)
	with open(path, "w", encoding="utf-8") as handle:
		handle.write(render_star_markdown(item, readme))
	return path, True


#============================================
def has_readme_section(text: str) -> bool:
	for line in text.splitlines():
		if line.strip() == README_HEADING:
			return True
	return False


#============================================
def strip_readme_section(text: str) -> str:
	"""
	Drop the README heading and everything after it.
	"""
	lines = text.splitlines(keepends=True)
	for index, line in enumerate(lines):
		if line.strip() == README_HEADING:
			return "".join(lines[:index]).rstrip("\n") + "\n"
	return text


#============================================
def append_readme_section(path: str, readme: ReadmeResult, replace: bool = False) -> bool:
	"""
	Append a README section to an existing document.

	An existing README section is left alone unless replace is set, in which
	case it is cut off and the new one written in its place.
	"""
	with open(path, "r", encoding="utf-8") as handle:
		existing = handle.read()
	if has_readme_section(existing):
		if not replace:
			return False
		with open(path, "w", encoding="utf-8") as handle:
			handle.write(strip_readme_section(existing) + "\n" + render_readme_section(readme))
		return True
	separator = "\n" if existing.endswith("\n") else "\n\n"
	with open(path, "a", encoding="utf-8") as handle:
		handle.write(separator)
		handle.write(render_readme_section(readme))
	return True
