from .config import settings, get_settings
from .security import create_access_token, verify_access_token
from .checklist import ChecklistTemplateProvider, get_checklist_provider
from .rate_limit import limiter

__all__ = [
    "settings",
    "get_settings",
    "create_access_token",
    "verify_access_token",
    "ChecklistTemplateProvider",
    "get_checklist_provider",
    "limiter"
]
