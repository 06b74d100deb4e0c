"""Tests for the background-task polling loop and gate verdict."""

import pytest

from sonar_gate.errors import ConfigError, GateFailure, GateTimeoutError
from sonar_gate.models import CeTask, Condition, QualityGateStatus, TaskStatus
from sonar_gate.waiter import GateOutcome, QualityGateWaiter


class ScriptedClient:
    """Returns task statuses in order, repeating the last one forever."""

    def __init__(self, statuses: list[str], gate: str = "OK") -> None:
        self.statuses = statuses
        self.gate = gate
        self.task_calls = 0
        self.gate_calls: list[tuple[str, str]] = []

    def get_task(self, task_url: str) -> CeTask:
        status = self.statuses[min(self.task_calls, len(self.statuses) - 1)]
        self.task_calls += 1
        return CeTask(id="AX1", status=status)

    def get_quality_gate_status(self, server_url: str, project_key: str) -> QualityGateStatus:
        self.gate_calls.append((server_url, project_key))
        conditions = []
        if self.gate != "OK":
            conditions = [Condition(metricKey="coverage", status=self.gate, actualValue="12.5")]
        return QualityGateStatus(status=self.gate, conditions=conditions)


class TestWaitForTask:

    def test_resolves_after_pending_polls(self, descriptor, fake_sleep):
        client = ScriptedClient(["PENDING", "PENDING", "SUCCESS"])
        waiter = QualityGateWaiter(client, gate_timeout=20, poll_interval=10, sleep=fake_sleep)

        task = waiter.wait_for_task(descriptor)

        assert task.status == TaskStatus.SUCCESS
        assert client.task_calls == 3
        assert fake_sleep.calls == [10, 10]

    @pytest.mark.parametrize("budget", [20, 25, 60, 360])
    def test_three_status_sequence_never_times_out(self, descriptor, fake_sleep, budget):
        client = ScriptedClient(["PENDING", "IN_PROGRESS", "SUCCESS"])
        waiter = QualityGateWaiter(client, gate_timeout=budget, poll_interval=10, sleep=fake_sleep)

        waiter.wait_for_task(descriptor)

        assert client.task_calls == 3

    def test_failure_is_terminal(self, descriptor, fake_sleep):
        client = ScriptedClient(["IN_PROGRESS", "FAILURE"])
        waiter = QualityGateWaiter(client, sleep=fake_sleep)

        assert waiter.wait_for_task(descriptor).status == TaskStatus.FAILURE
        assert fake_sleep.calls == [10]

    def test_immediate_success_does_not_sleep(self, descriptor, fake_sleep):
        client = ScriptedClient(["SUCCESS"])
        QualityGateWaiter(client, sleep=fake_sleep).wait_for_task(descriptor)
        assert fake_sleep.calls == []

    @pytest.mark.parametrize("budget", [0, 5, 20, 25, 360, 365])
    def test_never_finishing_task_times_out_within_one_interval(self, descriptor, fake_sleep, budget):
        client = ScriptedClient(["PENDING"])
        waiter = QualityGateWaiter(client, gate_timeout=budget, poll_interval=10, sleep=fake_sleep)

        with pytest.raises(GateTimeoutError) as exc_info:
            waiter.wait_for_task(descriptor)

        assert budget <= fake_sleep.total < budget + 10
        assert exc_info.value.budget_seconds == budget
        assert f"within {budget} seconds" in str(exc_info.value)

    def test_canceled_task_keeps_polling_until_timeout(self, descriptor, fake_sleep):
        client = ScriptedClient(["CANCELED"])
        waiter = QualityGateWaiter(client, gate_timeout=30, poll_interval=10, sleep=fake_sleep)

        with pytest.raises(GateTimeoutError):
            waiter.wait_for_task(descriptor)
        assert client.task_calls == 4

    @pytest.mark.parametrize("interval", [0, -10])
    def test_rejects_non_positive_interval(self, interval):
        with pytest.raises(ConfigError, match="Poll interval"):
            QualityGateWaiter(ScriptedClient(["SUCCESS"]), poll_interval=interval)

    def test_rejects_negative_timeout(self):
        with pytest.raises(ConfigError, match="Gate timeout"):
            QualityGateWaiter(ScriptedClient(["SUCCESS"]), gate_timeout=-5)

    def test_server_failed_status_is_terminal(self, descriptor, fake_sleep):
        client = ScriptedClient(["PENDING", "FAILED"])
        waiter = QualityGateWaiter(client, sleep=fake_sleep)

        task = waiter.wait_for_task(descriptor)

        assert task.status.is_failure
        assert client.task_calls == 2


class TestWaitForQualityGate:

    def test_fetches_gate_for_project(self, descriptor, fake_sleep):
        client = ScriptedClient(["SUCCESS"], gate="OK")
        outcome = QualityGateWaiter(client, sleep=fake_sleep).wait_for_quality_gate(descriptor)

        assert outcome.gate.passed
        assert outcome.failure_message is None
        assert client.gate_calls == [("https://sonar.test", "demo")]

    def test_timeout_skips_gate_lookup(self, descriptor, fake_sleep):
        client = ScriptedClient(["PENDING"])
        with pytest.raises(GateTimeoutError):
            QualityGateWaiter(client, gate_timeout=10, sleep=fake_sleep).wait_for_quality_gate(descriptor)
        assert client.gate_calls == []


class TestCheck:

    def _outcome(self, task_status: str, gate_status: str) -> GateOutcome:
        return GateOutcome(
            task=CeTask(status=task_status),
            gate=QualityGateStatus(status=gate_status),
        )

    def test_passing_gate_does_not_raise(self):
        QualityGateWaiter(ScriptedClient(["SUCCESS"])).check(self._outcome("SUCCESS", "OK"))

    def test_error_gate_is_hard_failure_by_default(self):
        waiter = QualityGateWaiter(ScriptedClient(["SUCCESS"]))
        with pytest.raises(GateFailure) as exc_info:
            waiter.check(self._outcome("SUCCESS", "ERROR"))
        assert str(exc_info.value) == "Quality gate reported ERROR"
        assert exc_info.value.fatal is True
        assert exc_info.value.status == "ERROR"

    def test_error_gate_is_warning_when_configured(self):
        waiter = QualityGateWaiter(ScriptedClient(["SUCCESS"]), warn_on_failure=True)
        with pytest.raises(GateFailure) as exc_info:
            waiter.check(self._outcome("SUCCESS", "ERROR"))
        assert str(exc_info.value) == "Quality gate reported ERROR"
        assert exc_info.value.fatal is False

    def test_warn_gate_fails(self):
        waiter = QualityGateWaiter(ScriptedClient(["SUCCESS"]))
        with pytest.raises(GateFailure, match="Quality gate reported WARN"):
            waiter.check(self._outcome("SUCCESS", "WARN"))

    def test_failed_task_with_passing_gate_fails(self):
        waiter = QualityGateWaiter(ScriptedClient(["FAILURE"]))
        with pytest.raises(GateFailure, match="Background task reported FAILURE"):
            waiter.check(self._outcome("FAILURE", "OK"))

    def test_server_failed_task_with_passing_gate_fails(self):
        waiter = QualityGateWaiter(ScriptedClient(["FAILED"]))
        with pytest.raises(GateFailure, match="Background task reported FAILURE"):
            waiter.check(self._outcome("FAILED", "OK"))
