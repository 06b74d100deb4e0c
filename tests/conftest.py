from pathlib import Path

import pytest

from sonar_gate.config import Settings
from sonar_gate.models import TaskDescriptor

SONAR_HOST = "sonar.test"
SERVER_URL = f"https://{SONAR_HOST}"
TASK_URL = f"{SERVER_URL}/api/ce/task?id=AX1"

REPORT_TASK = f"""\
projectKey=demo
serverUrl={SERVER_URL}
serverVersion=10.4.1
dashboardUrl={SERVER_URL}/dashboard?id=demo
ceTaskId=AX1
ceTaskUrl={TASK_URL}
"""


@pytest.fixture
def task_file(tmp_path: Path) -> Path:
    path = tmp_path / ".sonar" / "report-task.txt"
    path.parent.mkdir()
    path.write_text(REPORT_TASK)
    return path


@pytest.fixture
def descriptor() -> TaskDescriptor:
    return TaskDescriptor(
        projectKey="demo",
        serverUrl=SERVER_URL,
        ceTaskId="AX1",
        ceTaskUrl=TASK_URL,
    )


@pytest.fixture
def settings(tmp_path: Path, task_file: Path) -> Settings:
    return Settings(
        _env_file=None,
        task_file=str(task_file),
        image_dir=str(tmp_path / "badges"),
        artifact_provider="local",
        comment_target="stdout",
        sonar_auth_token="squ_token",
    )


class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
