import logging
import os
import subprocess
import sys
from typing import Protocol, TextIO

import httpx

from sonar_gate.config import Settings
from sonar_gate.errors import ConfigError, ServiceError

logger = logging.getLogger(__name__)

FAILURE_MARK = ":no_entry_sign:"
WARNING_MARK = ":warning:"


class ReviewComment:
    """Collects failures, warnings and markdown for a single review comment."""

    def __init__(self) -> None:
        self.failures: list[str] = []
        self.warnings: list[str] = []
        self.sections: list[str] = []

    def fail(self, message: str) -> None:
        logger.error(message)
        self.failures.append(message)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def markdown(self, text: str) -> None:
        self.sections.append(text.strip())

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def body(self) -> str:
        lines = [f"{FAILURE_MARK} {m}" for m in self.failures]
        lines += [f"{WARNING_MARK} {m}" for m in self.warnings]
        parts = []
        if lines:
            parts.append("\n".join(lines))
        parts.extend(self.sections)
        return "\n\n".join(parts) + "\n"


class CommentSink(Protocol):
    def post(self, body: str) -> None: ...


class StdoutCommentSink:
    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def post(self, body: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(body)
        stream.flush()


class GitLabNoteSink:
    def __init__(
        self,
        api_url: str,
        project_id: str,
        merge_request_iid: str,
        token: str,
        timeout: float = 30.0,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("CI_API_V4_URL", api_url),
                ("CI_PROJECT_ID", project_id),
                ("CI_MERGE_REQUEST_IID", merge_request_iid),
                ("GITLAB_TOKEN", token),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"GitLab comments need {', '.join(missing)}")
        self.url = f"{api_url.rstrip('/')}/projects/{project_id}/merge_requests/{merge_request_iid}/notes"
        self.token = token
        self.timeout = timeout

    def post(self, body: str) -> None:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, headers={"PRIVATE-TOKEN": self.token}, json={"body": body})
        if not response.is_success:
            raise ServiceError(response.status_code, response.text)
        logger.info("Posted merge request note", extra={"note_id": response.json().get("id")})


class GitHubCommentSink:
    def __init__(self, pr_number: str, token: str = "") -> None:
        if not pr_number:
            raise ConfigError("GitHub comments need GITHUB_PR_NUMBER")
        self.pr_number = pr_number
        self.token = token

    def post(self, body: str) -> None:
        env = {**os.environ}
        if self.token:
            env["GH_TOKEN"] = self.token
        subprocess.run(
            ["gh", "pr", "comment", self.pr_number, "--body-file", "-"],
            input=body,
            check=True,
            env=env,
            capture_output=True,
            text=True,
        )
        logger.info("Posted pull request comment", extra={"pr": self.pr_number})


def build_comment_sink(settings: Settings) -> CommentSink:
    match settings.comment_target.lower():
        case "stdout" | "":
            return StdoutCommentSink()
        case "gitlab":
            return GitLabNoteSink(
                settings.ci_api_v4_url,
                settings.ci_project_id,
                settings.ci_merge_request_iid,
                settings.gitlab_token,
                timeout=settings.http_timeout,
            )
        case "github":
            return GitHubCommentSink(settings.github_pr_number, settings.github_token)
        case _:
            raise ConfigError(f"Unsupported comment target: {settings.comment_target}")
