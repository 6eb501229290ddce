from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CommandAccepted(BaseModel):
    """Acknowledgment that a command was durably queued, not that it was applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    command_id: int
    command_type: str
    status: str
