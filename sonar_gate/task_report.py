"""Reader for the ``report-task.txt`` file the scanner leaves behind.

The scanner writes a Java-properties file without a section header, e.g.::

    projectKey=my-project
    serverUrl=https://sonar.example.com
    ceTaskId=AVmFtsN8
    ceTaskUrl=https://sonar.example.com/api/ce/task?id=AVmFtsN8

Files that wrap the same keys in a single ``[section]`` are accepted too.
"""

import configparser
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from sonar_gate.errors import ConfigError, NotFoundError
from sonar_gate.models import TaskDescriptor

logger = logging.getLogger(__name__)

GLOBAL_SECTION = "global"
REQUIRED_KEYS = ("projectKey", "serverUrl", "ceTaskId", "ceTaskUrl")
_SECTION_HEADER = re.compile(r"^\s*\[[^\]]+\]", re.MULTILINE)


def read_task_descriptor(path: str | Path | None) -> TaskDescriptor:
    if path is None or not str(path).strip():
        raise ConfigError("SonarQube task file not set. Pass --task-file or set TASK_FILE")

    file = Path(path)
    if not file.is_file():
        raise NotFoundError(str(path))

    logger.info("Loading task descriptor from %s", file)
    values = _parse(file.read_text(encoding="utf-8"), str(path))

    for key in REQUIRED_KEYS:
        if not values.get(key, "").strip():
            raise ConfigError(f"Task file {path} is missing required key '{key}'")

    try:
        return TaskDescriptor.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Task file {path} is invalid: {exc}") from exc


def _parse(text: str, source: str) -> dict[str, str]:
    parser = configparser.ConfigParser(delimiters=("=",), interpolation=None)
    parser.optionxform = str  # keys are camelCase

    if not _SECTION_HEADER.search(text):
        text = f"[{GLOBAL_SECTION}]\n{text}"
    try:
        parser.read_string(text, source=source)
    except configparser.Error as exc:
        raise ConfigError(f"Task file {source} could not be parsed: {exc}") from exc

    sections = parser.sections()
    if len(sections) != 1:
        raise ConfigError(f"Task file {source} must contain a single section, found {len(sections)}")
    return dict(parser[sections[0]])
