"""Human-readable run summaries."""

from __future__ import annotations

from jinja2 import Environment, StrictUndefined

from .core.models import RunReport

SUMMARY_TEMPLATE = """\
{% if report.cancelled %}
Run cancelled before all swatches were rendered.
{% endif %}
Swatches: {{ report.succeeded }} succeeded, {{ report.skipped }} skipped, {{ report.failed }} failed
{% if report.row_errors %}

Invalid inventory rows ({{ report.row_errors | length }}):
{% for error in report.row_errors %}
  line {{ error.line }}: {{ error.reason }}
{% endfor %}
{% endif %}
{% if report.failures %}

Failed renders ({{ report.failures | length }}):
{% for failure in report.failures %}
  {{ failure.output_path }}: {{ failure.reason }}
{% endfor %}
{% endif %}
"""

_env = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)
_summary = _env.from_string(SUMMARY_TEMPLATE)


def format_summary(report: RunReport) -> str:
    return _summary.render(report=report).rstrip("\n")
