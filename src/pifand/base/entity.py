"""Base entity class for named daemon objects."""

from typing import Any
from uuid import NAMESPACE_DNS, UUID, getnode, uuid4, uuid5

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """Base class for every named object in pifand.

    Devices, processes and runners all carry a human-readable name and a
    UUID. Hardware entities pass a ``unique_id`` (normally their sysfs
    path) so the same fan or sensor keeps the same UUID across restarts
    on the same machine.
    """

    model_config = ConfigDict(frozen=True)

    uuid: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for this entity",
    )
    name: str = Field(
        min_length=1, description="Human-readable name for this entity"
    )

    def __init__(self, unique_id: str | None = None, **data: Any) -> None:
        """Initialize Entity, deriving a stable UUID when asked to.

        Args:
            unique_id: Optional hardware identifier. When given, the UUID
                is derived from this machine's node id and the identifier
                instead of being random.
            **data: Field values for the entity

        """
        if unique_id is not None and "uuid" not in data:
            dns_name = f"{getnode()}.{unique_id}.uuid.pifand.local"
            data["uuid"] = uuid5(NAMESPACE_DNS, dns_name)
        super().__init__(**data)

    def __repr__(self) -> str:
        """Return class name and entity name."""
        return f"{self.__class__.__name__}(name='{self.name}')"
