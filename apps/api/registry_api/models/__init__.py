from __future__ import annotations

from registry_api.models.auth import ApiToken, AuthSession  # noqa: F401
from registry_api.models.base import Base as Base  # noqa: F401
from registry_api.models.identity import User  # noqa: F401
from registry_api.models.oauth import OAuthState  # noqa: F401
from registry_api.models.packages import Follow, Package, PackageOwner, Version  # noqa: F401
