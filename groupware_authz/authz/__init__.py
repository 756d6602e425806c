from .config import AuthzConfigError, AuthzConfigModel, load_authz_config
from .context import AuthzFetchContext, resolve_permissions
from .errors import AccessDeniedError
from .gid import GlobalID
from .mask import ALL_PERMISSIONS, NO_PERMISSION, Mask
from .store import AuthzStore, StoreError

__all__ = [
    "ALL_PERMISSIONS",
    "AccessDeniedError",
    "AuthzConfigError",
    "AuthzConfigModel",
    "AuthzFetchContext",
    "AuthzStore",
    "GlobalID",
    "Mask",
    "NO_PERMISSION",
    "StoreError",
    "load_authz_config",
    "resolve_permissions",
]
