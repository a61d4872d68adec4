"""
TrabajaTecnico Backend — Service Dependencies
==============================================

What:  FastAPI dependencies that hand process-wide objects to routes.
How:   The Mailer is built once in the lifespan and kept on ``app.state``;
       ApplicationService is a thin per-request wrapper around it.
"""

from fastapi import Request

from trabajatecnico.config import settings
from trabajatecnico.services.application_service import ApplicationService
from trabajatecnico.services.mailer import Mailer


def get_mailer(request: Request) -> Mailer:
    mailer = getattr(request.app.state, "mailer", None)
    if mailer is None:
        # Lifespan not run (e.g. an app mounted without it); build from settings once
        mailer = Mailer.from_settings(settings)
        request.app.state.mailer = mailer
    return mailer


def get_application_service(request: Request) -> ApplicationService:
    return ApplicationService(
        mailer=get_mailer(request),
        upload_root=settings.upload_root,
        status_transitions=settings.status_transitions,
    )
