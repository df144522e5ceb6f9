from gymhub.client.guards import RequirePermission, RequireRole  # noqa: F401
from gymhub.client.membership import (  # noqa: F401
    fetch_membership,
    has_permission,
    has_role,
    list_permissions,
)
from gymhub.client.mirror import MembershipMirror, MirrorStatus  # noqa: F401
