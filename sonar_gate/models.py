from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    # reported by SonarQube servers
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_failure(self) -> bool:
        return self in (TaskStatus.FAILURE, TaskStatus.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self == TaskStatus.SUCCESS or self.is_failure


class GateStatus(str, Enum):
    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"
    NONE = "NONE"


# --- Report-task descriptor (local file) ---


class TaskDescriptor(BaseModel):
    project_key: str = Field(alias="projectKey", min_length=1)
    server_url: str = Field(alias="serverUrl", min_length=1)
    ce_task_id: str = Field(alias="ceTaskId", min_length=1)
    ce_task_url: str = Field(alias="ceTaskUrl", min_length=1)
    dashboard_url: str | None = Field(default=None, alias="dashboardUrl")
    server_version: str | None = Field(default=None, alias="serverVersion")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# --- Server responses ---


class CeTask(BaseModel):
    id: str = ""
    status: TaskStatus
    component_key: str = Field(default="", alias="componentKey")
    error_message: str | None = Field(default=None, alias="errorMessage")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Condition(BaseModel):
    metric_key: str = Field(alias="metricKey")
    status: GateStatus
    actual_value: str | None = Field(default=None, alias="actualValue")
    comparator: str | None = None
    error_threshold: str | None = Field(default=None, alias="errorThreshold")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class QualityGateStatus(BaseModel):
    status: GateStatus
    conditions: list[Condition] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @property
    def passed(self) -> bool:
        return self.status == GateStatus.OK

    @property
    def failing_conditions(self) -> list[Condition]:
        return [c for c in self.conditions if c.status != GateStatus.OK]


class AnalysisEvent(BaseModel):
    key: str = ""
    category: str
    name: str = ""
    description: str = ""

    model_config = ConfigDict(extra="allow")

    @property
    def reasons(self) -> list[str]:
        return [part.strip() for part in self.description.split(",") if part.strip()]


class Analysis(BaseModel):
    key: str = ""
    date: str = ""
    events: list[AnalysisEvent] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")
