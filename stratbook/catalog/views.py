from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .models import Management, Strategy
from .query import DEFAULT_DATE_FORMAT, local_date

DATETIME_FORMAT = "%x %X"


def _badges(values: Sequence[str]) -> list[str]:
    return list(values) if values else ["None"]


def _or(value: str, default: str) -> str:
    return value if value else default


def _csv(values: Sequence[str], dash: str = "-") -> str:
    return ", ".join(values) if values else dash


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


@dataclass(frozen=True)
class ListItem:
    id: str
    name: str
    tags_text: str
    updated_date: str
    selected: bool = False

    @property
    def meta_line(self) -> str:
        return f"Tags: {self.tags_text} | Updated: {self.updated_date}"


@dataclass(frozen=True)
class StrategyDetail:
    title: str
    name: str
    description: str
    tags: list[str]
    timeframes: list[str]
    indicators: list[str]
    entry_rules: list[str]
    exit_rules: list[str]
    stoploss: str
    takeprofit: str
    position_size: str
    management: list[str]
    created: str
    updated: str
    version: int
    sections: list[tuple[str, list[str]]] = field(default_factory=list)


def list_item(strategy: Strategy, *, selected: bool = False, date_format: str = DEFAULT_DATE_FORMAT) -> ListItem:
    return ListItem(
        id=strategy.id,
        name=strategy.name,
        tags_text=", ".join(strategy.tags) if strategy.tags else "No tags",
        updated_date=local_date(strategy.meta.updated_at, date_format),
        selected=selected,
    )


def management_status(management: Management) -> list[str]:
    """One line per option, e.g. "Trailing Stop: Enabled (2x)".

    The auxiliary value is shown only for an enabled option that has one.
    """
    ts, so = management.trailing_stop, management.scale_out
    options = [
        ("Trailing Stop", ts.enabled, f" ({ts.multiplier}x)" if ts.multiplier else ""),
        ("Scale Out", so.enabled, f" ({so.percent_first}%)" if so.percent_first else ""),
        ("DCA", management.dca.enabled, ""),
        ("Manual", management.manual.enabled, ""),
    ]
    return [
        f"{label}: {'Enabled' if enabled else 'Disabled'}{extra if enabled else ''}"
        for label, enabled, extra in options
    ]


def structured_view(strategy: Strategy, *, datetime_format: str = DATETIME_FORMAT) -> StrategyDetail:
    created = strategy.meta.created_at.astimezone().strftime(datetime_format)
    updated = strategy.meta.updated_at.astimezone().strftime(datetime_format)
    description = _or(strategy.description, "No description")
    stoploss = _or(strategy.stoploss_rule, "Not specified")
    takeprofit = _or(strategy.takeprofit_rule, "Not specified")
    position_size = _or(strategy.position_size_rule, "Not specified")
    management = management_status(strategy.management)
    sections = [
        (
            "Overview",
            [
                f"Name: {strategy.name}",
                f"Description: {description}",
                f"Tags: {_csv(strategy.tags, 'None')}",
                f"Timeframes: {_csv(strategy.timeframes, 'None')}",
                f"Created: {created}",
                f"Updated: {updated}",
                f"Version: {strategy.meta.version}",
            ],
        ),
        ("Indicators", _badges(strategy.indicators)),
        ("Entry Rules", list(strategy.entry_rules)),
        ("Exit Rules", list(strategy.exit_rules)),
        (
            "Risk Management",
            [
                f"Stop Loss: {stoploss}",
                f"Take Profit: {takeprofit}",
                f"Position Size: {position_size}",
            ],
        ),
        ("Management Options", management),
    ]
    return StrategyDetail(
        title=f"Strategy: {strategy.name}",
        name=strategy.name,
        description=description,
        tags=_badges(strategy.tags),
        timeframes=_badges(strategy.timeframes),
        indicators=_badges(strategy.indicators),
        entry_rules=list(strategy.entry_rules),
        exit_rules=list(strategy.exit_rules),
        stoploss=stoploss,
        takeprofit=takeprofit,
        position_size=position_size,
        management=management,
        created=created,
        updated=updated,
        version=strategy.meta.version,
        sections=sections,
    )


def render_detail_text(detail: StrategyDetail) -> str:
    lines = [detail.title, "=" * len(detail.title)]
    for heading, rows in detail.sections:
        lines.append("")
        lines.append(heading)
        lines.extend(f"  - {row}" for row in rows)
    return "\n".join(lines)


def raw_view(strategy: Strategy) -> str:
    """The stored representation, pretty-printed with two-space indent."""
    return json.dumps(strategy.to_dict(), indent=2, ensure_ascii=False)


def catalog_markdown(strategies: list[Strategy], *, generated: datetime | None = None) -> str:
    """Markdown overview table of the whole catalog."""
    stamp = (generated or datetime.now(tz=timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
    lines: list[str] = [
        "# Trading strategies",
        "",
        f"Generated (UTC): {stamp}",
        "",
        "| ID | Name | Tags | Timeframes | Indicators | Version | Updated (UTC) |",
        "|---|---|---|---|---|---|---|",
    ]
    for s in strategies:
        cells = [
            s.id,
            s.name,
            _csv(s.tags),
            _csv(s.timeframes),
            _csv(s.indicators),
            str(s.meta.version),
            s.meta.updated_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M"),
        ]
        lines.append("| " + " | ".join(_cell(c) for c in cells) + " |")
    lines.append("")
    return "\n".join(lines)
