"""Status report for the review comment.

Content decisions live in ``StatusReportRenderer.build``, which returns a
``Report`` made of typed sections. ``Report.to_markdown`` is the only place
that knows about Markdown syntax.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sonar_gate.badges import GATE_BADGE_ID, BadgeSink
from sonar_gate.client import SonarClient
from sonar_gate.models import AnalysisEvent, Condition, QualityGateStatus, TaskDescriptor

logger = logging.getLogger(__name__)

REPORT_TITLE = "SonarQube"
ADDITIONAL_MEASURES_TITLE = "Additional Measures"


@dataclass(frozen=True)
class Heading:
    text: str
    level: int = 2


@dataclass(frozen=True)
class Link:
    text: str
    url: str


@dataclass(frozen=True)
class Image:
    alt: str
    url: str


@dataclass(frozen=True)
class Table:
    header: tuple[str | Image, str]
    rows: list[tuple[str | Image, str]] = field(default_factory=list)


Section = Heading | Link | Image | Table


@dataclass
class Report:
    sections: list[Section] = field(default_factory=list)

    def add(self, section: Section) -> "Report":
        self.sections.append(section)
        return self

    @property
    def images(self) -> list[Image]:
        found: list[Image] = []
        for section in self.sections:
            if isinstance(section, Image):
                found.append(section)
            elif isinstance(section, Table):
                cells = [section.header[0], *(row[0] for row in section.rows)]
                found.extend(cell for cell in cells if isinstance(cell, Image))
        return found

    @property
    def tables(self) -> list[Table]:
        return [s for s in self.sections if isinstance(s, Table)]

    def to_markdown(self) -> str:
        return "\n\n".join(_render(section) for section in self.sections) + "\n"


def _cell(value: str | Image) -> str:
    if isinstance(value, Image):
        return f"![{value.alt}]({value.url})"
    return " ".join(value.splitlines()).replace("|", "\\|")


def _render(section: Section) -> str:
    match section:
        case Heading(text=text, level=level):
            return f"{'#' * level} {text}"
        case Link(text=text, url=url):
            return f"[{text}]({url})"
        case Image():
            return _cell(section)
        case Table(header=header, rows=rows):
            lines = [
                f"| {_cell(header[0])} | {_cell(header[1])} |",
                "| --- | --- |",
            ]
            lines.extend(f"| {_cell(left)} | {_cell(right)} |" for left, right in rows)
            return "\n".join(lines)
    raise TypeError(f"Unknown report section: {section!r}")


def describe_condition(condition: Condition) -> str:
    status = condition.status.value
    if condition.actual_value is None:
        return status
    if condition.comparator and condition.error_threshold is not None:
        op = {"LT": "<", "GT": ">"}.get(condition.comparator, condition.comparator)
        return f"{status} ({condition.actual_value} {op} {condition.error_threshold})"
    return f"{status} ({condition.actual_value})"


class StatusReportRenderer:
    def __init__(
        self,
        client: SonarClient,
        badge_sink: BadgeSink,
        additional_measures: Sequence[str] = (),
    ) -> None:
        self.client = client
        self.badge_sink = badge_sink
        self.additional_measures = list(additional_measures)

    def render(
        self,
        descriptor: TaskDescriptor,
        gate: QualityGateStatus,
        latest_event: AnalysisEvent | None,
    ) -> str:
        return self.build(descriptor, gate, latest_event).to_markdown()

    def build(
        self,
        descriptor: TaskDescriptor,
        gate: QualityGateStatus,
        latest_event: AnalysisEvent | None,
    ) -> Report:
        report = Report().add(Heading(REPORT_TITLE))
        if descriptor.dashboard_url:
            report.add(Link("Open dashboard", descriptor.dashboard_url))

        gate_badge = self._gate_badge(descriptor)
        if gate.passed:
            report.add(gate_badge)
        else:
            if latest_event is not None:
                report.add(Table(header=(gate_badge, "Information"), rows=[("", r) for r in latest_event.reasons]))
            else:
                report.add(gate_badge)

            failing = gate.failing_conditions
            if failing:
                rows = [
                    (self._measure_badge(descriptor, c.metric_key), describe_condition(c))
                    for c in failing
                ]
                report.add(Table(header=("Measure", "Status"), rows=rows))

        if self.additional_measures:
            report.add(Heading(ADDITIONAL_MEASURES_TITLE, level=3))
            for metric in self.additional_measures:
                report.add(self._measure_badge(descriptor, metric))

        logger.info(
            "Rendered status report",
            extra={"project": descriptor.project_key, "sections": len(report.sections)},
        )
        return report

    def _gate_badge(self, descriptor: TaskDescriptor) -> Image:
        badge = self.client.get_gate_badge(descriptor.server_url, descriptor.project_key)
        return Image("Quality Gate", self.badge_sink.save(badge, GATE_BADGE_ID))

    def _measure_badge(self, descriptor: TaskDescriptor, metric_key: str) -> Image:
        badge = self.client.get_measure_badge(descriptor.server_url, descriptor.project_key, metric_key)
        return Image(metric_key, self.badge_sink.save(badge, metric_key))
