"""
Enumerations shared by the integration models and schemas.
"""
from enum import Enum as PyEnum


class CoreType(str, PyEnum):
    """Core banking vendor protocol family."""
    TEMENOS = "temenos"
    FINASTRA = "finastra"
    MAMBU = "mambu"
    THOUGHT_MACHINE = "thought_machine"
    CUSTOM = "custom"


class AuthType(str, PyEnum):
    BASIC = "basic"
    API_KEY = "api_key"
    OAUTH2 = "oauth2"


class MappingDirection(str, PyEnum):
    """Which pass of the field mapping engine a mapping takes part in."""
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    BIDIRECTIONAL = "bidirectional"

    @property
    def is_outbound(self) -> bool:
        return self in (MappingDirection.OUTBOUND, MappingDirection.BIDIRECTIONAL)

    @property
    def is_inbound(self) -> bool:
        return self in (MappingDirection.INBOUND, MappingDirection.BIDIRECTIONAL)


class QueueStatus(str, PyEnum):
    """Status of an integration queue item."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueueStatus.COMPLETED, QueueStatus.FAILED)
