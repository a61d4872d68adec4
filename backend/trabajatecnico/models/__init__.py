"""
TrabajaTecnico Backend — ORM Models
====================================

Importing this package registers every table on ``Base.metadata``
(Alembic autogenerate and the test schema both rely on it).
"""

from trabajatecnico.models.application import ProjectApplication
from trabajatecnico.models.notification import Notification
from trabajatecnico.models.project import Project
from trabajatecnico.models.user import CompanyProfile, TechnicianProfile, User

__all__ = [
    "CompanyProfile",
    "Notification",
    "Project",
    "ProjectApplication",
    "TechnicianProfile",
    "User",
]
