import logging
import time
from collections.abc import Callable

from sonar_gate.badges import BadgeSink, FileBadgeSink, build_url_builder
from sonar_gate.client import SonarClient
from sonar_gate.comment import CommentSink, ReviewComment, build_comment_sink
from sonar_gate.config import Settings
from sonar_gate.errors import GateFailure
from sonar_gate.report import StatusReportRenderer
from sonar_gate.task_report import read_task_descriptor
from sonar_gate.waiter import QualityGateWaiter

logger = logging.getLogger(__name__)


class GateRunner:
    def __init__(
        self,
        settings: Settings,
        client: SonarClient | None = None,
        comment_sink: CommentSink | None = None,
        badge_sink: BadgeSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self._client = client
        self._comment_sink = comment_sink
        self._badge_sink = badge_sink
        self._sleep = sleep

    def run(self) -> ReviewComment:
        """Wait for the gate, post the report and return the posted comment.

        A gate that did not pass is re-raised as ``GateFailure`` once the
        comment has been posted; ``GateFailure.fatal`` tells the caller whether
        to fail the build.
        """
        descriptor = read_task_descriptor(self.settings.task_file)
        logger.info(
            "Waiting for quality gate",
            extra={"project": descriptor.project_key, "task_id": descriptor.ce_task_id},
        )

        comment_sink = self._comment_sink or build_comment_sink(self.settings)
        badge_sink = self._badge_sink or FileBadgeSink(
            self.settings.image_dir, build_url_builder(self.settings)
        )
        client = self._client or SonarClient(
            self.settings.sonar_auth_token, timeout=self.settings.http_timeout
        )

        try:
            waiter = QualityGateWaiter(
                client,
                gate_timeout=self.settings.gate_timeout,
                poll_interval=self.settings.poll_interval,
                warn_on_failure=self.settings.warn_on_failure,
                sleep=self._sleep,
            )
            outcome = waiter.wait_for_quality_gate(descriptor)

            comment = ReviewComment()
            failure: GateFailure | None = None
            try:
                waiter.check(outcome)
            except GateFailure as exc:
                failure = exc
                if exc.fatal:
                    comment.fail(exc.message)
                else:
                    comment.warn(exc.message)

            event = None
            if not outcome.gate.passed:
                event = client.get_latest_quality_gate_event(descriptor.server_url, descriptor.project_key)

            renderer = StatusReportRenderer(client, badge_sink, self.settings.measure_keys)
            comment.markdown(renderer.render(descriptor, outcome.gate, event))
        finally:
            if self._client is None:
                client.close()

        comment_sink.post(comment.body())
        logger.info("Posted status report", extra={"project": descriptor.project_key})

        if failure is not None:
            raise failure
        return comment
