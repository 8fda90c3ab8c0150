"""Task, artifact and stream event models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class A2AModel(BaseModel):
    """Base class for the task domain types. Field names are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)


class TaskState(str, Enum):
    SUBMITTED = "submitted"
    WORKING = "working"
    INPUT_REQUIRED = "input_required"
    COMPLETED = "completed"
    CANCELED = "canceled"


class TextPart(A2AModel):
    """A fragment of plain text output."""

    type: Literal["text"] = "text"
    text: str


# Only text parts exist today; other part kinds join this alias as a tagged union.
Part = TextPart


class Artifact(A2AModel):
    """A named, ordered bundle of output parts."""

    name: str
    parts: list[Part] = Field(default_factory=list)


class TaskStatus(A2AModel):
    state: TaskState


class Task(A2AModel):
    """A unit of client-requested work tracked through the lifecycle state machine."""

    id: str
    state: TaskState = TaskState.SUBMITTED
    result: str | None = None
    artifacts: list[Artifact] | None = None
    created_at: Annotated[datetime, Field(alias="createdAt")]
    updated_at: Annotated[datetime, Field(alias="updatedAt")]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> TaskStatus:
        return TaskStatus(state=self.state)

    def snapshot(self) -> "Task":
        """Return an independent copy that is safe to hand out."""
        return self.model_copy(deep=True)


class TaskStatusUpdateEvent(A2AModel):
    """Emitted on every successful lifecycle transition."""

    type: Literal["task_status_update"] = "task_status_update"
    task_id: Annotated[str, Field(alias="taskId")]
    state: TaskState
    final: bool = False
    task: Task | None = None


class TaskArtifactUpdateEvent(A2AModel):
    """Emitted when work produces an artifact ahead of completion."""

    type: Literal["task_artifact_update"] = "task_artifact_update"
    task_id: Annotated[str, Field(alias="taskId")]
    artifact: Artifact

    @property
    def final(self) -> bool:
        return False


TaskEvent = TaskStatusUpdateEvent | TaskArtifactUpdateEvent


class Message(A2AModel):
    """Inbound client message. Parts are kept loose since clients differ on the part tag."""

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True, extra="allow")

    role: str | None = None
    parts: list[dict[str, Any]] = Field(default_factory=list)
