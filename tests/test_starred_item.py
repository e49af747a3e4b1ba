from datetime import datetime
from datetime import timezone

import pytest

from stardlp import starred_item


#============================================
def make_repo(full_name: str = "foo/bar") -> dict:
	return {
		"full_name": full_name,
		"description": "A bar for foo",
		"stargazers_count": 12,
		"forks_count": 3,
		"language": "Python",
		"created_at": "2020-01-02T03:04:05Z",
		"updated_at": "2026-01-02T03:04:05Z",
		"html_url": f"https://github.com/{full_name}",
		"topics": ["cli", "stars"],
	}


#============================================
def test_adapter_reads_star_media_type_shape() -> None:
	"""
	Nested repo payloads should normalize with starred_at from the envelope.
	"""
	payload = {"starred_at": "2026-03-04T05:06:07Z", "repo": make_repo()}
	item = starred_item.starred_item_from_payload(payload)
	assert item.full_name == "foo/bar"
	assert item.starred_at == datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
	assert item.topics == ("cli", "stars")
	assert item.stargazers_count == 12
	assert item.raw == payload


#============================================
def test_adapter_reads_flat_repository_shape() -> None:
	"""
	Flat repository payloads should normalize the same way.
	"""
	payload = make_repo("acme/widgets")
	item = starred_item.starred_item_from_payload(payload)
	assert item.full_name == "acme/widgets"
	assert item.owner == "acme"
	assert item.repo_name == "widgets"
	assert item.starred_at is None


#============================================
def test_adapter_rejects_missing_full_name() -> None:
	"""
	Payloads without a full_name cannot become items.
	"""
	with pytest.raises(ValueError):
		starred_item.starred_item_from_payload({"repo": {"description": "x"}})


#============================================
def test_star_date_falls_back_to_now() -> None:
	"""
	Items without starred_at should date themselves at the current time.
	"""
	item = starred_item.starred_item_from_payload(make_repo())
	before = datetime.now(timezone.utc)
	value = item.star_date()
	assert value >= before
	assert value.tzinfo is not None


#============================================
def test_adapter_tolerates_null_fields() -> None:
	"""
	Null description, language, and topics should become empty values.
	"""
	payload = {"full_name": "foo/bar", "description": None, "language": None, "topics": None}
	item = starred_item.starred_item_from_payload(payload)
	assert item.description == ""
	assert item.language == ""
	assert item.topics == ()
	assert item.html_url == "https://github.com/foo/bar"


#============================================
def test_payload_full_name_reads_both_shapes() -> None:
	assert starred_item.payload_full_name({"repo": {"full_name": "foo/bar"}}) == "foo/bar"
	assert starred_item.payload_full_name({"full_name": " foo/baz "}) == "foo/baz"
	assert starred_item.payload_full_name({"repo": {}}) is None
	assert starred_item.payload_full_name(["foo/bar"]) is None
