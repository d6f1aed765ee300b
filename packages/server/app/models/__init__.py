# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .team import Team, TeamMember, TeamInvite  # noqa: F401
from .workspace import Workspace  # noqa: F401
from .collection import Collection  # noqa: F401
from .vault import Vault, VaultItem  # noqa: F401
from .api_key import WorkspaceAPIKey  # noqa: F401
from .token import RefreshToken  # noqa: F401
from .template import PublicTemplate  # noqa: F401
