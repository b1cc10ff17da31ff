"""
Permission tokens — the capabilities a role or a permission group can carry.

Each token follows the pattern `resource:action`, with a `:self` suffix for
capabilities that only apply to resources the holder owns. Tokens are
additive: holding one never removes another, and absence denies.

Tokens are compared as plain strings everywhere outside this module, so
permission groups stored in the database can carry tokens that are not
listed here.
"""

from enum import Enum


class Permission(str, Enum):
    # ── Users ──
    USER_READ = "user:read"
    USER_READ_SELF = "user:read:self"
    USER_WRITE = "user:write"
    USER_DELETE = "user:delete"

    # ── Cases ──
    CASE_READ = "case:read"
    CASE_READ_SELF = "case:read:self"
    CASE_WRITE = "case:write"                    # status changes, notes
    CASE_WRITE_SELF = "case:write:self"
    CASE_DELETE = "case:delete"
    CASE_ASSIGN = "case:assign"                  # agent assignment, priority

    # ── Documents ──
    DOCUMENT_READ = "document:read"
    DOCUMENT_READ_SELF = "document:read:self"
    DOCUMENT_WRITE = "document:write"
    DOCUMENT_WRITE_SELF = "document:write:self"
    DOCUMENT_DELETE = "document:delete"

    # ── Forms ──
    FORM_READ = "form:read"
    FORM_READ_SELF = "form:read:self"
    FORM_WRITE = "form:write"
    FORM_WRITE_SELF = "form:write:self"
    FORM_DELETE = "form:delete"

    # ── Security / audit ──
    SECURITY_READ = "security:read"
    SECURITY_WRITE = "security:write"            # permission groups, grants

    # ── Analytics / reports ──
    ANALYTICS_READ = "analytics:read"
    ANALYTICS_WRITE = "analytics:write"
