import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sonar_gate.client import SonarClient
from sonar_gate.errors import ConfigError, GateFailure, GateTimeoutError
from sonar_gate.models import CeTask, QualityGateStatus, TaskDescriptor

logger = logging.getLogger(__name__)

DEFAULT_GATE_TIMEOUT = 360
DEFAULT_POLL_INTERVAL = 10


@dataclass(frozen=True)
class GateOutcome:
    task: CeTask
    gate: QualityGateStatus

    @property
    def failure_message(self) -> str | None:
        if not self.gate.passed:
            return f"Quality gate reported {self.gate.status.value}"
        if self.task.status.is_failure:
            return "Background task reported FAILURE"
        return None


class QualityGateWaiter:
    """Polls the background task until it resolves, then reads the gate verdict.

    Elapsed time is the sum of the delays slept, not wall-clock time, so the
    loop can be driven by a fake ``sleep`` in tests. The last delay is clipped
    so the task is always checked once more right at the budget.
    """

    def __init__(
        self,
        client: SonarClient,
        gate_timeout: float = DEFAULT_GATE_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        warn_on_failure: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if poll_interval <= 0:
            raise ConfigError(f"Poll interval must be positive, got {poll_interval}")
        if gate_timeout < 0:
            raise ConfigError(f"Gate timeout must not be negative, got {gate_timeout}")
        self.client = client
        self.gate_timeout = gate_timeout
        self.poll_interval = poll_interval
        self.warn_on_failure = warn_on_failure
        self._sleep = sleep

    def wait_for_task(self, descriptor: TaskDescriptor) -> CeTask:
        elapsed = 0.0
        while True:
            task = self.client.get_task(descriptor.ce_task_url)
            logger.info(
                "Background task status",
                extra={"task_id": descriptor.ce_task_id, "status": task.status.value, "elapsed": elapsed},
            )
            if task.status.is_terminal:
                return task

            if elapsed >= self.gate_timeout:
                logger.error(
                    "Background task did not finish in time",
                    extra={"task_id": descriptor.ce_task_id, "budget": self.gate_timeout},
                )
                raise GateTimeoutError(self.gate_timeout)

            delay = min(self.poll_interval, self.gate_timeout - elapsed)
            self._sleep(delay)
            elapsed += delay

    def wait_for_quality_gate(self, descriptor: TaskDescriptor) -> GateOutcome:
        task = self.wait_for_task(descriptor)
        gate = self.client.get_quality_gate_status(descriptor.server_url, descriptor.project_key)
        logger.info(
            "Quality gate resolved",
            extra={"project": descriptor.project_key, "gate": gate.status.value, "task": task.status.value},
        )
        return GateOutcome(task=task, gate=gate)

    def check(self, outcome: GateOutcome) -> None:
        """Raise ``GateFailure`` when the gate did not pass.

        With ``warn_on_failure`` the exception is marked non-fatal so callers
        report it as a warning instead of failing the build.
        """
        message = outcome.failure_message
        if message is None:
            return
        raise GateFailure(message, outcome.gate.status.value, fatal=not self.warn_on_failure)
