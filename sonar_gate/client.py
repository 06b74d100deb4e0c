import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from sonar_gate.errors import ServiceError
from sonar_gate.models import Analysis, AnalysisEvent, CeTask, QualityGateStatus

logger = logging.getLogger(__name__)

GATE_BADGE_ENDPOINT = "/api/badges/gate"
MEASURE_BADGE_ENDPOINT = "/api/badges/measure"
PROJECT_ANALYSES_SEARCH_ENDPOINT = "/api/project_analyses/search"
QUALITY_GATE_PROJECT_STATUS_ENDPOINT = "/api/qualitygates/project_status"

QUALITY_GATE_CATEGORY = "QUALITY_GATE"
BADGE_TEMPLATE = "ROUNDED"

ModelT = TypeVar("ModelT", bound=BaseModel)


class SonarClient:
    """Synchronous client for the handful of SonarQube Web API calls we need.

    The auth token is sent as the Basic-Auth username with an empty password,
    which is how SonarQube accepts user tokens. An empty token sends requests
    unauthenticated.
    """

    def __init__(
        self,
        auth_token: str = "",
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ) -> None:
        self._auth_token = auth_token
        self._http = http or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SonarClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_task(self, task_url: str) -> CeTask:
        response = self._get(task_url)
        return _parse(CeTask, response, _json(response).get("task"))

    def get_quality_gate_status(self, server_url: str, project_key: str) -> QualityGateStatus:
        url = _endpoint(server_url, QUALITY_GATE_PROJECT_STATUS_ENDPOINT)
        response = self._get(url, params={"projectKey": project_key})
        return _parse(QualityGateStatus, response, _json(response).get("projectStatus"))

    def get_latest_quality_gate_event(
        self, server_url: str, project_key: str
    ) -> AnalysisEvent | None:
        url = _endpoint(server_url, PROJECT_ANALYSES_SEARCH_ENDPOINT)
        response = self._get(
            url,
            params={"project": project_key, "category": QUALITY_GATE_CATEGORY, "ps": 1},
        )
        analyses = _json(response).get("analyses") or []
        if not analyses:
            return None

        latest = _parse(Analysis, response, analyses[0])
        for event in latest.events:
            if event.category == QUALITY_GATE_CATEGORY:
                return event
        return None

    def get_gate_badge(self, server_url: str, project_key: str) -> bytes:
        url = _endpoint(server_url, GATE_BADGE_ENDPOINT)
        return self._get(url, params=_badge_params(project_key)).content

    def get_measure_badge(self, server_url: str, project_key: str, metric_key: str) -> bytes:
        url = _endpoint(server_url, MEASURE_BADGE_ENDPOINT)
        params = {**_badge_params(project_key), "metric": metric_key}
        return self._get(url, params=params).content

    def with_credentials(self, url: str) -> httpx.URL:
        parsed = httpx.URL(url)
        if self._auth_token:
            parsed = parsed.copy_with(username=self._auth_token, password="")
        return parsed

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("GET %s", url, extra={"params": params or {}})
        response = self._http.get(self.with_credentials(url), params=params)
        if not response.is_success:
            raise ServiceError(response.status_code, response.text)
        return response


def _endpoint(server_url: str, path: str) -> str:
    return f"{server_url.rstrip('/')}{path}"


def _badge_params(project_key: str) -> dict[str, str]:
    return {"key": project_key, "blinking": "false", "template": BADGE_TEMPLATE}


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ServiceError(response.status_code, response.text) from exc
    if not isinstance(data, dict):
        raise ServiceError(response.status_code, response.text)
    return data


def _parse(model: type[ModelT], response: httpx.Response, payload: Any) -> ModelT:
    if payload is None:
        raise ServiceError(response.status_code, response.text)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ServiceError(response.status_code, response.text) from exc
