from eventshare.models.agreement import AgreementStatus, Permission, SharingAgreement
from eventshare.models.event import DetailVisibility, Event
from eventshare.models.group import Group, GroupMembership, MembershipStatus, Role
from eventshare.models.projection import Projection, ProjectionStatus, Scope

__all__ = [
    "AgreementStatus",
    "DetailVisibility",
    "Event",
    "Group",
    "GroupMembership",
    "MembershipStatus",
    "Permission",
    "Projection",
    "ProjectionStatus",
    "Role",
    "Scope",
    "SharingAgreement",
]
