"""Resource tag helpers: code archive digest and ownership marker.

All helpers are pure and return a new list; callers persist the result
through the Functions API.
"""

from typing import List, Optional, Sequence, Tuple

from funcdeploy import PROJECT_NAME
from funcdeploy.core.exceptions import ResourceNotOwnedError

# Added to every resource created by this tool. Destructive operations are
# refused on resources without it.
TAG_CREATED_BY = f"created_by={PROJECT_NAME}"

TAG_CODE_ARCHIVE_DIGEST_PREFIX = "code_archive_digest="


def set_tag(tags: Optional[Sequence[str]], tag: str) -> List[str]:
    result = list(tags or [])
    if tag not in result:
        result.append(tag)
    return result


def set_created_by_tag(tags: Optional[Sequence[str]]) -> List[str]:
    return set_tag(tags, TAG_CREATED_BY)


def set_code_archive_digest_tag(tags: Optional[Sequence[str]], digest: str) -> List[str]:
    """Replace any digest tag with a single tag for ``digest``."""
    filtered = [tag for tag in (tags or []) if not tag.startswith(TAG_CODE_ARCHIVE_DIGEST_PREFIX)]
    filtered.append(TAG_CODE_ARCHIVE_DIGEST_PREFIX + digest)
    return filtered


def get_code_archive_digest(tags: Optional[Sequence[str]]) -> Tuple[str, bool]:
    for tag in tags or []:
        if tag.startswith(TAG_CODE_ARCHIVE_DIGEST_PREFIX):
            return tag[len(TAG_CODE_ARCHIVE_DIGEST_PREFIX):], True
    return "", False


def is_owned(tags: Optional[Sequence[str]]) -> bool:
    return TAG_CREATED_BY in (tags or [])


def check_resource_ownership(tags: Optional[Sequence[str]]) -> None:
    """Raise ResourceNotOwnedError unless the ownership tag is present."""
    if not is_owned(tags):
        raise ResourceNotOwnedError("Resource does not belong to this tool", code="not_owned")
