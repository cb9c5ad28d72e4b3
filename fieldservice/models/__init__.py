from .org import Org
from .user import User
from .org_membership import OrgMembership, ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER
from .customer import Customer
from .part import Part
from .equipment import Equipment
from .ticket import Ticket
from .project import Project
from .labor_rate_profile import LaborRateProfile
from .estimate import Estimate
from .estimate_line_item import EstimateLineItem

__all__ = [
    "Org",
    "User",
    "OrgMembership",
    "ROLE_OWNER",
    "ROLE_ADMIN",
    "ROLE_MEMBER",
    "Customer",
    "Part",
    "Equipment",
    "Ticket",
    "Project",
    "LaborRateProfile",
    "Estimate",
    "EstimateLineItem",
]
