from __future__ import annotations

from enum import Enum


class RoleCode(str, Enum):
    ADMIN = "ADMIN"
    APPROVER = "APPROVER"
    MAKER = "MAKER"
    VIEWER = "VIEWER"


DEFAULT_READ_ROLES: set[str] = {
    RoleCode.ADMIN.value,
    RoleCode.APPROVER.value,
    RoleCode.MAKER.value,
    RoleCode.VIEWER.value,
}


# Roles allowed to build, validate and submit recipient batches.
DEFAULT_WRITE_ROLES: set[str] = {
    RoleCode.ADMIN.value,
    RoleCode.MAKER.value,
}


APPROVAL_ROLES: set[str] = {
    RoleCode.ADMIN.value,
    RoleCode.APPROVER.value,
}
