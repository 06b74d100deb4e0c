import logging
import re
from pathlib import Path
from typing import Protocol

from sonar_gate.config import Settings
from sonar_gate.errors import ConfigError

logger = logging.getLogger(__name__)

GATE_BADGE_ID = "quality_gate"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class ArtifactUrlBuilder(Protocol):
    def url_for(self, path: str) -> str: ...


class BadgeSink(Protocol):
    def save(self, badge: bytes, identifier: str) -> str: ...


class GitLabArtifactUrlBuilder:
    def __init__(self, project_url: str, job_id: str) -> None:
        if not project_url or not job_id:
            raise ConfigError("GitLab artifact URLs need CI_PROJECT_URL and CI_JOB_ID")
        self.project_url = project_url.rstrip("/")
        self.job_id = job_id

    def url_for(self, path: str) -> str:
        return f"{self.project_url}/-/jobs/{self.job_id}/artifacts/file/{path.lstrip('/')}"


class LocalArtifactUrlBuilder:
    def url_for(self, path: str) -> str:
        return path


class FileBadgeSink:
    """Writes badges as SVG files under ``image_dir`` and returns their URL."""

    def __init__(self, image_dir: str, url_builder: ArtifactUrlBuilder) -> None:
        self.image_dir = Path(image_dir)
        self.url_builder = url_builder

    def save(self, badge: bytes, identifier: str) -> str:
        self.image_dir.mkdir(parents=True, exist_ok=True)
        name = f"{_UNSAFE_CHARS.sub('_', identifier)}.svg"
        (self.image_dir / name).write_bytes(badge)
        logger.debug("Saved badge %s", name, extra={"dir": str(self.image_dir)})
        return self.url_builder.url_for((self.image_dir / name).as_posix())


def build_url_builder(settings: Settings) -> ArtifactUrlBuilder:
    provider = settings.artifact_provider.lower()
    if not provider:
        provider = "gitlab" if settings.ci_project_url and settings.ci_job_id else "local"

    match provider:
        case "gitlab":
            return GitLabArtifactUrlBuilder(settings.ci_project_url, settings.ci_job_id)
        case "local":
            return LocalArtifactUrlBuilder()
        case _:
            raise ConfigError(f"Unsupported artifact provider: {settings.artifact_provider}")
