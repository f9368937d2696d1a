import pytest

from funcdeploy.core.exceptions import ResourceNotOwnedError
from funcdeploy.deploy.tags import (
    TAG_CODE_ARCHIVE_DIGEST_PREFIX,
    TAG_CREATED_BY,
    check_resource_ownership,
    get_code_archive_digest,
    is_owned,
    set_code_archive_digest_tag,
    set_created_by_tag,
    set_tag,
)


def test_created_by_tag_value():
    assert TAG_CREATED_BY == "created_by=mcp-scaleway-functions"
    assert TAG_CODE_ARCHIVE_DIGEST_PREFIX == "code_archive_digest="


def test_set_tag_is_idempotent():
    tags = set_tag(["a"], "b")
    assert tags == ["a", "b"]
    assert set_tag(tags, "b") == ["a", "b"]


def test_set_tag_does_not_mutate_input():
    original = ["a"]
    set_tag(original, "b")
    assert original == ["a"]


def test_set_created_by_tag_handles_none():
    assert set_created_by_tag(None) == [TAG_CREATED_BY]


def test_set_digest_replaces_existing():
    tags = ["env=prod", "code_archive_digest=sha256:old", TAG_CREATED_BY]

    result = set_code_archive_digest_tag(tags, "sha256:new")

    digests = [t for t in result if t.startswith(TAG_CODE_ARCHIVE_DIGEST_PREFIX)]
    assert digests == ["code_archive_digest=sha256:new"]
    assert "env=prod" in result and TAG_CREATED_BY in result


def test_set_digest_collapses_duplicates():
    tags = ["code_archive_digest=sha256:a", "code_archive_digest=sha256:b"]
    result = set_code_archive_digest_tag(tags, "sha256:c")
    assert result == ["code_archive_digest=sha256:c"]


def test_get_digest_present():
    assert get_code_archive_digest(["x", "code_archive_digest=sha256:abc"]) == ("sha256:abc", True)


def test_get_digest_absent():
    assert get_code_archive_digest(["x"]) == ("", False)
    assert get_code_archive_digest(None) == ("", False)


def test_get_digest_empty_value_is_present():
    assert get_code_archive_digest(["code_archive_digest="]) == ("", True)


def test_ownership():
    assert is_owned([TAG_CREATED_BY])
    assert not is_owned(["created_by=someone-else"])
    assert not is_owned([])

    check_resource_ownership(["a", TAG_CREATED_BY])


def test_ownership_rejects_untagged():
    with pytest.raises(ResourceNotOwnedError) as exc:
        check_resource_ownership(["created_by=someone-else"])
    assert exc.value.code == "not_owned"
    assert "does not belong" in str(exc.value)
