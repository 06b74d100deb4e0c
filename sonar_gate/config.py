from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    task_file: str = ".sonar/report-task.txt"
    gate_timeout: int = Field(default=360, ge=0)
    poll_interval: int = Field(default=10, gt=0)
    warn_on_failure: bool = False
    additional_measures: str = ""
    image_dir: str = ".sonar-gate/badges"
    sonar_auth_token: str = ""
    http_timeout: float = 30.0

    # Badge artifacts
    artifact_provider: str = ""
    ci_project_url: str = ""
    ci_job_id: str = ""

    # Comment posting
    comment_target: str = "stdout"
    gitlab_token: str = ""
    ci_api_v4_url: str = ""
    ci_project_id: str = ""
    ci_merge_request_iid: str = ""
    github_token: str = ""
    github_pr_number: str = ""

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def measure_keys(self) -> list[str]:
        return [key.strip() for key in self.additional_measures.split(",") if key.strip()]
