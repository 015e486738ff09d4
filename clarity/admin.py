"""SQLAdmin panel.

WHEN MAKING CHANGES TO THESE VIEWS, KEEP THE __str__ METHODS IN models.py IN
SYNC. They are what the admin shows for related rows in lists and dropdowns.

Access is a single shared password (ADMIN_SECRET_KEY) kept in the signed
session cookie set up by SessionMiddleware.
"""

import hmac
import logging

from fastapi import FastAPI
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy.engine import Engine
from starlette.requests import Request

from . import models
from .settings import Settings

logger = logging.getLogger(__name__)


class AdminAuth(AuthenticationBackend):
    """Password login for the admin panel."""

    def __init__(self, secret_key: str):
        super().__init__(secret_key=secret_key)
        self._password = secret_key

    async def login(self, request: Request) -> bool:
        form = await request.form()
        password = str(form.get("password") or "")
        if not hmac.compare_digest(password.encode(), self._password.encode()):
            logger.warning("[ADMIN] Failed login attempt for %r", form.get("username"))
            return False
        request.session.update({"admin": True})
        return True

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return bool(request.session.get("admin"))


class UserAdmin(ModelView, model=models.User):
    column_list = [models.User.id, models.User.email, models.User.name, models.User.clerk_id, models.User.is_onboarded, models.User.registered_at]
    form_columns = ["clerk_id", "email", "name", "is_onboarded"]
    column_searchable_list = ["email", "name", "clerk_id"]
    column_sortable_list = ["email", "registered_at"]
    name = "User"
    name_plural = "Users"
    icon = "fa-solid fa-user"


class WebsiteAdmin(ModelView, model=models.Website):
    """Each website belongs to one user (owner dropdown)."""
    column_list = [models.Website.id, models.Website.name, models.Website.url, models.Website.user, models.Website.currency, models.Website.created_at]
    form_columns = ["name", "url", "currency", "timezone", "user"]
    column_searchable_list = ["name", "url"]
    column_sortable_list = ["name", "created_at"]
    form_ajax_refs = {
        "user": {
            "fields": ["email", "name"],
            "order_by": "email",
        }
    }
    name = "Website"
    name_plural = "Websites"
    icon = "fa-solid fa-globe"


class ConnectionAdmin(ModelView, model=models.Connection):
    """Platform connections.

    The encrypted access token is never shown or editable here; tokens only
    enter through the API so they are always encrypted with the current key.
    """
    column_list = [models.Connection.id, models.Connection.platform, models.Connection.type, models.Connection.website, models.Connection.is_active, models.Connection.created_at]
    column_details_exclude_list = [models.Connection.encrypted_access_token]
    form_columns = ["platform", "type", "config", "is_active", "website"]
    column_sortable_list = ["platform", "created_at", "is_active"]
    form_ajax_refs = {
        "website": {
            "fields": ["name", "url"],
            "order_by": "name",
        }
    }
    name = "Connection"
    name_plural = "Connections"
    icon = "fa-solid fa-plug"


class EventLogAdmin(ModelView, model=models.EventLog):
    """Ingested events. Read-only: rows are written by the ingestion gate."""
    column_list = [models.EventLog.id, models.EventLog.event_name, models.EventLog.event_id, models.EventLog.website, models.EventLog.status, models.EventLog.value, models.EventLog.received_at]
    column_searchable_list = ["event_id", "event_name"]
    column_sortable_list = ["received_at", "event_time", "status"]
    can_create = False
    can_edit = False
    name = "Event Log"
    name_plural = "Event Logs"
    icon = "fa-solid fa-list"


def mount_admin(app: FastAPI, engine: Engine, settings: Settings) -> Admin:
    admin = Admin(
        app,
        engine,
        title="ClarityTracking Admin",
        authentication_backend=AdminAuth(secret_key=settings.ADMIN_SECRET_KEY),
    )
    admin.add_view(UserAdmin)
    admin.add_view(WebsiteAdmin)
    admin.add_view(ConnectionAdmin)
    admin.add_view(EventLogAdmin)
    return admin
