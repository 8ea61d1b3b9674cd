"""Capability names and the default role layout.

Every capability is an explicit permission row. The admin role receives the
full catalog as rows of its own; no code path treats a role name specially.
"""

from dataclasses import dataclass

DOCUMENTS_UPLOAD = "documents.upload"
DOCUMENTS_DELETE = "documents.delete"

ANALYSIS_START = "analysis.start"
ANALYSIS_RERUN = "analysis.rerun"
ANALYSIS_DELETE = "analysis.delete"
ANALYSIS_VIEW_ALL = "analysis.view_all"
ANALYSIS_MANAGE_ALL = "analysis.manage_all"
ANALYSIS_VIEW_ERRORS = "analysis.view_errors"
ANALYSIS_EXPORT_PDF = "analysis.export_pdf"
ANALYSIS_EXPORT_EXCEL = "analysis.export_excel"

ROLES_MANAGE = "roles.manage"


@dataclass(frozen=True)
class PermissionSpec:
    name: str
    category: str


@dataclass(frozen=True)
class RoleSpec:
    name: str
    description: str
    permissions: tuple[str, ...]


PERMISSIONS: tuple[PermissionSpec, ...] = (
    PermissionSpec(DOCUMENTS_UPLOAD, "documents"),
    PermissionSpec(DOCUMENTS_DELETE, "documents"),
    PermissionSpec(ANALYSIS_START, "analysis"),
    PermissionSpec(ANALYSIS_RERUN, "analysis"),
    PermissionSpec(ANALYSIS_DELETE, "analysis"),
    PermissionSpec(ANALYSIS_VIEW_ALL, "analysis"),
    PermissionSpec(ANALYSIS_MANAGE_ALL, "analysis"),
    PermissionSpec(ANALYSIS_VIEW_ERRORS, "analysis"),
    PermissionSpec(ANALYSIS_EXPORT_PDF, "export"),
    PermissionSpec(ANALYSIS_EXPORT_EXCEL, "export"),
    PermissionSpec(ROLES_MANAGE, "administration"),
)

DEFAULT_ROLES: tuple[RoleSpec, ...] = (
    RoleSpec(
        name="admin",
        description="Full access, granted as explicit permission rows",
        permissions=tuple(p.name for p in PERMISSIONS),
    ),
    RoleSpec(
        name="user",
        description="Uploads documents and runs analyses on them",
        permissions=(
            DOCUMENTS_UPLOAD,
            DOCUMENTS_DELETE,
            ANALYSIS_START,
            ANALYSIS_RERUN,
            ANALYSIS_EXPORT_PDF,
            ANALYSIS_EXPORT_EXCEL,
        ),
    ),
    RoleSpec(
        name="viewer",
        description="Reads analyses shared with them",
        permissions=(ANALYSIS_EXPORT_PDF,),
    ),
)
