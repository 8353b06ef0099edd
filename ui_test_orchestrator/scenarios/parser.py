"""Extraction of ordered scenario steps from Gherkin-style text."""

import html
import itertools
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from ui_test_orchestrator.errors import ScenarioParseError
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.tracking.base import CaseDefinition

log = logging.getLogger(__name__)

STEP_LINE_PATTERN = re.compile(r"^(?:Given|When|Then|And|But|\*)\s")
SCENARIO_PREFIXES = ("Scenario Outline:", "Scenario Template:", "Scenario:", "Example:")

LINE_BREAK_PATTERN = re.compile(r"<br\s*/?>|</(?:p|div|li)>", re.IGNORECASE)
# Markup only; bare <name> tokens are Gherkin placeholders.
TAG_PATTERN = re.compile(
    r"</?(?:a|b|blockquote|br|code|div|em|font|h[1-6]|hr|i|img|li|ol|p|pre|s|span"
    r"|strike|strong|sub|sup|table|tbody|td|th|thead|tr|u|ul)\b[^>]*>",
    re.IGNORECASE,
)
GHERKIN_LINE_PATTERN = re.compile(
    r"^(?:\s*[-•*]*)?\s*(given|when|then|and|but)\b(.*)$", re.IGNORECASE
)
PLACEHOLDER_PATTERN = re.compile(r"<([^<>\s]+)>")
EMPTY_STRING_PATTERN = re.compile(r'""')


def clean_html(text: str) -> str:
    """Strip markup from rich-text case fields, keeping line breaks."""
    text = LINE_BREAK_PATTERN.sub("\n", text)
    text = TAG_PATTERN.sub("", text)
    return html.unescape(text).replace("\xa0", " ").strip()


def extract_gherkin_steps(text: str) -> Sequence[str]:
    """Return the Given/When/Then/And/But lines of free text, in order.

    Keywords are normalized to capitalized form; everything from an
    ``Examples:`` heading on is ignored.
    """
    steps: list[str] = []
    for raw in text.replace("\r", "\n").split("\n"):
        line = raw.strip()
        lowered = line.lower()
        if lowered.startswith("examples:"):
            break
        if not line or lowered.startswith(("feature:", "scenario")):
            continue
        if match := GHERKIN_LINE_PATTERN.match(line):
            steps.append(f"{match.group(1).capitalize()} {match.group(2).strip()}")
    return steps


def examples_headers(text: str) -> Sequence[str]:
    """Return the header row of the ``Examples:`` table in free text, if any."""
    lines = text.replace("\r", "\n").split("\n")
    for index, raw in enumerate(lines):
        if raw.strip().lower().startswith("examples:"):
            for row in lines[index + 1 :]:
                if "|" in row:
                    return [cell.strip() for cell in row.split("|") if cell.strip()]
            break
    return []


def restore_placeholders(steps: Iterable[str], headers: Sequence[str]) -> Sequence[str]:
    """Map emptied ``""`` arguments back to ``"<header>"`` placeholders.

    Headers are consumed in order across all steps, wrapping around when
    there are more empty arguments than headers.
    """
    if not headers:
        return list(steps)
    names = itertools.cycle(headers)

    def substitute(match: re.Match[str]) -> str:
        return f'"<{next(names)}>"'

    return [EMPTY_STRING_PATTERN.sub(substitute, step) for step in steps]


def fill_placeholders(steps: Iterable[str], data: Mapping[str, str]) -> Sequence[str]:
    """Replace ``<name>`` placeholders with values from ``data``.

    Unknown placeholders are left untouched.
    """

    def substitute(match: re.Match[str]) -> str:
        return data.get(match.group(1), match.group(0))

    return [PLACEHOLDER_PATTERN.sub(substitute, step) for step in steps]


def scenario_from_case(case: CaseDefinition) -> Scenario:
    """Turn a tracker case into a scenario tagged with its case id.

    Raises:
        ScenarioParseError: If the case holds no Gherkin steps

    """
    text = clean_html(case.bdd)
    steps = restore_placeholders(extract_gherkin_steps(text), examples_headers(text))
    if not steps:
        raise ScenarioParseError(f"No Gherkin steps found in case C{case.id}")
    title = " ".join(case.title.split())
    return Scenario(
        name=f"C{case.id} - {title}",
        tags=frozenset({f"@C{case.id}"}),
        steps=tuple(steps),
        feature=f"Test Case: C{case.id}",
    )


def parse_feature(text: str, source: str = "<string>") -> Sequence[Scenario]:
    """Parse the scenarios of a ``.feature`` document.

    Tag lines before ``Feature:`` apply to every scenario; tag lines before a
    scenario apply to that scenario. ``Background:`` steps are prepended to
    each following scenario. Examples tables, doc strings and data tables are
    skipped; outlines keep their ``<placeholder>`` text.

    Raises:
        ScenarioParseError: On a step outside any scenario or a scenario
            without steps

    """
    feature: str | None = None
    feature_tags: set[str] = set()
    pending_tags: set[str] = set()
    background: list[str] = []
    scenarios: list[Scenario] = []

    current_name: str | None = None
    current_tags: frozenset[str] = frozenset()
    current_steps: list[str] = []
    in_background = False
    in_examples = False
    in_docstring = False

    def finish(lineno: int) -> None:
        if current_name is None:
            return
        if not current_steps:
            raise ScenarioParseError(
                f"{source}:{lineno}: scenario '{current_name}' has no steps"
            )
        scenarios.append(
            Scenario(
                name=current_name,
                tags=current_tags,
                steps=(*background, *current_steps),
                feature=feature,
            )
        )

    lineno = 0
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line.startswith(('"""', "```")):
            in_docstring = not in_docstring
            continue
        if in_docstring or not line or line.startswith("#") or line.startswith("|"):
            continue

        if line.startswith("@"):
            pending_tags.update(line.split())
        elif line.startswith("Feature:"):
            feature = line.removeprefix("Feature:").strip()
            feature_tags = pending_tags
            pending_tags = set()
        elif line.startswith("Background:"):
            finish(lineno)
            current_name = None
            in_background, in_examples = True, False
        elif line.startswith(SCENARIO_PREFIXES):
            finish(lineno)
            prefix = next(p for p in SCENARIO_PREFIXES if line.startswith(p))
            current_name = line.removeprefix(prefix).strip()
            current_tags = frozenset(feature_tags | pending_tags)
            current_steps = []
            pending_tags = set()
            in_background, in_examples = False, False
        elif line.startswith(("Examples:", "Scenarios:")):
            in_examples = True
            pending_tags = set()
        elif STEP_LINE_PATTERN.match(line):
            if in_examples:
                continue
            if in_background:
                background.append(line)
            elif current_name is not None:
                current_steps.append(line)
            else:
                raise ScenarioParseError(
                    f"{source}:{lineno}: step outside of a scenario: {line}"
                )
        elif current_name is None and not in_background:
            # free-form feature description
            continue
        else:
            log.debug("%s:%d: ignoring line: %s", source, lineno, line)

    finish(lineno)
    return scenarios


def load_features(directory: Path) -> Sequence[Scenario]:
    """Parse every ``.feature`` file under ``directory`` in path order."""
    scenarios: list[Scenario] = []
    for path in sorted(directory.rglob("*.feature")):
        parsed = parse_feature(path.read_text(encoding="utf-8"), source=str(path))
        log.info("Loaded %d scenarios from %s", len(parsed), path)
        scenarios.extend(parsed)
    return scenarios
