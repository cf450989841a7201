# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tag reconciliation between default tags, resource tags and remote tags.

Default tags are merged into resource tags on the client before every
write, so the tag set stored by License Manager is the merged set. On
read, that remote set is accepted as the authoritative merged_tags.
"""

import logging
from typing import Iterable, Mapping, Optional

from ..config import Settings
from ..models.plan import TagChanges

logger = logging.getLogger(__name__)

# Keys under this prefix are reserved by AWS and cannot be managed
AWS_RESERVED_PREFIX = "aws:"


def merge_tags(
    default_tags: Mapping[str, str] | None,
    resource_tags: Mapping[str, str] | None,
) -> dict[str, str]:
    """
    Merge default tags with resource-specific tags.

    Resource-specific tags win on key collision.

    Args:
        default_tags: Process-wide default tags
        resource_tags: Tags declared on the license configuration

    Returns:
        New dictionary holding the merged tag set

    Example:
        >>> merge_tags({"env": "prod", "region": "us"}, {"env": "dev"})
        {'env': 'dev', 'region': 'us'}
    """
    merged = dict(default_tags or {})
    merged.update(resource_tags or {})
    return merged


def is_ignored_key(
    key: str,
    ignore_keys: Iterable[str] = (),
    ignore_prefixes: Iterable[str] = (),
) -> bool:
    """Whether a tag key is managed outside the reconciler."""
    if key.startswith(AWS_RESERVED_PREFIX):
        return True
    if key in set(ignore_keys):
        return True
    return any(key.startswith(prefix) for prefix in ignore_prefixes)


def merged_tags_from_observation(
    remote_tags: Mapping[str, str] | None,
    ignore_keys: Iterable[str] = (),
    ignore_prefixes: Iterable[str] = (),
) -> dict[str, str]:
    """
    Accept the remote tag set as the authoritative merged tags.

    AWS-reserved keys and keys configured as ignored are left out.
    """
    ignore_keys = set(ignore_keys)
    ignore_prefixes = tuple(ignore_prefixes)
    return {
        key: value
        for key, value in (remote_tags or {}).items()
        if not is_ignored_key(key, ignore_keys, ignore_prefixes)
    }


def resource_tags_from_observation(
    merged_tags: Mapping[str, str],
    default_tags: Mapping[str, str] | None,
    declared_tags: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Derive the settable resource tags from an observed merged tag set.

    A default tag whose remote value still equals the default is not a
    resource tag, unless the declaration sets that key itself. If the
    remote value differs, the resource overrides it.

    Args:
        merged_tags: Tags stored remotely
        default_tags: Process-wide default tags
        declared_tags: Resource tags of the last declared configuration, if known
    """
    defaults = default_tags or {}
    declared = declared_tags or {}
    return {
        key: value
        for key, value in merged_tags.items()
        if key not in defaults or defaults[key] != value or key in declared
    }


def diff_tags(current: Mapping[str, str], desired: Mapping[str, str]) -> TagChanges:
    """
    Compute the tag writes needed to move current tags to desired tags.

    Args:
        current: Tags stored remotely
        desired: Tags that should be stored remotely

    Returns:
        TagChanges with tags to set and keys to remove
    """
    to_set = {key: value for key, value in desired.items() if current.get(key) != value}
    to_remove = frozenset(key for key in current if key not in desired)
    return TagChanges(to_set=to_set, to_remove=to_remove)


class DefaultTagProvider:
    """
    Process-wide default tags.

    The provider is read-only shared configuration. Callers take one
    snapshot per reconciliation pass and thread it through explicitly.
    """

    def __init__(
        self,
        default_tags: Optional[Mapping[str, str]] = None,
        ignore_keys: Iterable[str] = (),
        ignore_prefixes: Iterable[str] = (),
    ):
        """
        Initialize the provider.

        Args:
            default_tags: Tags applied to every license configuration
            ignore_keys: Tag keys managed outside the reconciler
            ignore_prefixes: Tag key prefixes managed outside the reconciler
        """
        self._default_tags = dict(default_tags or {})
        self.ignore_keys = frozenset(ignore_keys)
        self.ignore_prefixes = tuple(ignore_prefixes)

        # Ignored keys can never be applied, so they are not defaults either
        for key in list(self._default_tags):
            if is_ignored_key(key, self.ignore_keys, self.ignore_prefixes):
                logger.warning(f"Default tag '{key}' is ignored and will not be applied")
                del self._default_tags[key]

    @classmethod
    def from_settings(cls, config: Settings) -> "DefaultTagProvider":
        """Build a provider from application settings."""
        return cls(
            default_tags=config.default_tags,
            ignore_keys=config.ignore_tag_keys,
            ignore_prefixes=config.ignore_tag_key_prefixes,
        )

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the default tags for one reconciliation pass."""
        return dict(self._default_tags)
