# Garante o registro de TODAS as models no mesmo registry
from salonbook.db.base_class import Base  # noqa
from salonbook.models.appointment import (  # noqa
    Appointment,
    AppointmentServiceItem,
    AppointmentStatusEntry,
)
from salonbook.models.audit_log import AuditLog  # noqa
from salonbook.models.client import Client  # noqa
from salonbook.models.professional import Professional, ServiceAssignment  # noqa
from salonbook.models.schedule import ScheduleEntry  # noqa
from salonbook.models.service import Service  # noqa
from salonbook.models.user import User  # noqa
