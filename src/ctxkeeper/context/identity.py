"""Identity resolution: (base type, type name, context name) → file identifier.

All type-specific naming rules live here. Nothing in this module touches the
filesystem; identifiers are file stems under the type's directory.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from datetime import datetime, timezone

from ctxkeeper.context.errors import IdentityError
from ctxkeeper.context.models import BaseType, StorageKind

CONTEXT_NAME_REQUIRED = "Context name is required"


def timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp with millisecond resolution.

    Format: YYYY-MM-DDTHH-mm-ss-SSSZ, which sorts lexically in time order.
    """
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def batch_id(taken: Iterable[str] = ()) -> str:
    """Name for a new archive bucket, distinct from every name in `taken`."""
    bucket = timestamp()
    taken = set(taken)
    while bucket in taken:
        bucket = f"{timestamp()}-{secrets.token_hex(3)}"
    return bucket


def for_write(
    base_type: BaseType,
    type_name: str,
    context_name: str | None,
    now: datetime | None = None,
) -> str:
    """Identifier a new write should land on.

    Log types get a fresh timestamped name on every call; the caller's
    context name is not part of it.
    """
    kind = base_type.kind
    if kind is StorageKind.SINGLE_DOCUMENT:
        return type_name
    if kind is StorageKind.COLLECTION:
        return _require(context_name)
    return f"{type_name}-{timestamp(now)}"


def for_lookup(base_type: BaseType, type_name: str, context_name: str | None) -> str:
    """Identifier of an existing document selected by read or clear.

    For logs the name filter is the stored identifier of one entry.
    """
    kind = base_type.kind
    if kind is StorageKind.SINGLE_DOCUMENT:
        return type_name
    return _require(context_name)


def select_all(base_type: BaseType, type_name: str, identifiers: Iterable[str]) -> list[str]:
    """Every stored identifier belonging to the type, newest first for logs."""
    if base_type.kind is StorageKind.LOG:
        prefix = f"{type_name}-"
        identifiers = [i for i in identifiers if i.startswith(prefix)]
    return sorted(identifiers, reverse=True)


def valid_name(name: str) -> bool:
    """Project and context names become single path components."""
    return (
        bool(name)
        and name not in (".", "..")
        and not any(c in name for c in ("/", "\\", "\x00"))
    )


def _require(context_name: str | None) -> str:
    if not context_name:
        raise IdentityError(CONTEXT_NAME_REQUIRED)
    return context_name
