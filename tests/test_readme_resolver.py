import base64

import pytest

from fake_github import FakeGitHub
from stardlp import document_converter
from stardlp import readme_resolver


#============================================
def tag_converter(content: str, source_format: str) -> tuple[str, bool]:
	return f"converted[{source_format}]:{content}", True


#============================================
@pytest.mark.parametrize(
	"filename, expected",
	[
		("README.org", "org"),
		("README.rst", "rst"),
		("README.txt", "txt"),
		("README", "txt"),
		("readme", "txt"),
		("README.md", "markdown"),
		("README.markdown", "markdown"),
		("README.adoc", "markdown"),
		("README.rdoc", "markdown"),
		("docs/GUIDE.RST", "rst"),
	],
)
def test_classify_readme_format(filename, expected) -> None:
	assert readme_resolver.classify_readme_format(filename) == expected


#============================================
def test_decode_content_payload_handles_wrapped_base64() -> None:
	"""
	GitHub wraps base64 payloads at 60 columns; line breaks must be ignored.
	"""
	text = "# Title\n\n" + ("word " * 40)
	encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
	wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
	assert readme_resolver.decode_content_payload({"content": wrapped, "encoding": "base64"}) == text


#============================================
def test_resolve_prefers_first_candidate() -> None:
	client = FakeGitHub(files={"foo/bar": {"README.md": "# md", "README.rst": "rst"}})
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter)
	assert result == readme_resolver.ReadmeResult(content="# md", format="markdown", path="README.md")
	assert result.needs_note is False
	assert client.content_requests == [("foo/bar", "README.md")]


#============================================
def test_resolve_converts_org_readme() -> None:
	client = FakeGitHub(files={"foo/bar": {"README.org": "* Heading"}})
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter)
	assert result.format == "org"
	assert result.content == "converted[org]:* Heading"
	assert result.converted is True
	assert result.needs_note is True


#============================================
def test_resolve_treats_transport_errors_as_missing() -> None:
	"""
	A non-404 error on one candidate is logged and the search continues.
	"""
	messages = []
	client = FakeGitHub(
		files={"foo/bar": {"readme.md": "# lower"}},
		errors={("foo/bar", "README.md"): ConnectionError("reset by peer")},
	)
	result = readme_resolver.resolve_readme(
		client, "foo/bar", converter_fn=tag_converter, log_fn=messages.append,
	)
	assert result.path == "readme.md"
	assert any("reset by peer" in line for line in messages)


#============================================
def test_resolve_root_fallback_with_converter() -> None:
	"""
	A root holding only GUIDE.rst resolves through the listing and converts.
	"""
	client = FakeGitHub(files={"foo/bar": {"GUIDE.rst": "Guide\n=====\n"}})
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter)
	assert result.format == "rst"
	assert result.content == "converted[rst]:Guide\n=====\n"
	assert result.path == "GUIDE.rst"


#============================================
def test_resolve_root_fallback_without_converter_keeps_raw_text() -> None:
	"""
	When the converter is missing the raw rst text is returned, still tagged rst.
	"""
	def missing_runner(*args, **kwargs):
		raise FileNotFoundError("pandoc")

	def converter(content, source_format):
		return document_converter.convert_document(content, source_format, runner=missing_runner)

	client = FakeGitHub(files={"foo/bar": {"GUIDE.rst": "Guide\n=====\n"}})
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=converter)
	assert result == readme_resolver.ReadmeResult(content="Guide\n=====\n", format="rst", path="GUIDE.rst")
	assert result.converted is False


#============================================
def test_resolve_root_fallback_prefers_readme_names() -> None:
	client = FakeGitHub(
		files={"foo/bar": {"ReadMe.MD": "# mixed case", "GUIDE.rst": "guide"}},
		roots={"foo/bar": [
			{"type": "file", "name": "GUIDE.rst", "path": "GUIDE.rst"},
			{"type": "dir", "name": "readme-assets", "path": "readme-assets"},
			{"type": "file", "name": "ReadMe.MD", "path": "ReadMe.MD"},
		]},
	)
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter)
	assert result.path == "ReadMe.MD"
	assert result.format == "markdown"


#============================================
def test_resolve_root_fallback_ignores_other_markdown_files() -> None:
	"""
	Changelogs and contributing guides are not mistaken for a README.
	"""
	client = FakeGitHub(
		files={"foo/bar": {"CHANGELOG.md": "# Changes", "CONTRIBUTING.md": "# Help", "GUIDE.rst": "guide"}},
		roots={"foo/bar": [
			{"type": "file", "name": "CHANGELOG.md", "path": "CHANGELOG.md"},
			{"type": "file", "name": "CONTRIBUTING.md", "path": "CONTRIBUTING.md"},
			{"type": "file", "name": "GUIDE.rst", "path": "GUIDE.rst"},
		]},
	)
	result = readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter)
	assert result.path == "GUIDE.rst"
	assert result.format == "rst"


#============================================
def test_resolve_root_with_only_changelog_has_no_readme() -> None:
	client = FakeGitHub(files={"foo/bar": {"CHANGELOG.md": "# Changes"}})
	assert readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter) is None


#============================================
def test_resolve_returns_none_when_nothing_found() -> None:
	client = FakeGitHub(files={"foo/bar": {"setup.py": "print()"}})
	assert readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter) is None


#============================================
def test_resolve_returns_none_when_listing_fails() -> None:
	client = FakeGitHub(errors={("foo/bar", ""): ConnectionError("down")})
	assert readme_resolver.resolve_readme(client, "foo/bar", converter_fn=tag_converter) is None
