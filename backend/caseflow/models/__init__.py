from caseflow.models.user import User  # noqa: F401
from caseflow.models.case import Case, CasePriority, VisaType  # noqa: F401
from caseflow.models.document import Document  # noqa: F401
from caseflow.models.audit import AuditLog  # noqa: F401
from caseflow.models.notification import Notification  # noqa: F401
from caseflow.models.permission_group import PermissionGroup, UserPermissionGroup  # noqa: F401
