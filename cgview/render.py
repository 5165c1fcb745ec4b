"""Column rendering: value formatters, render configs and view items."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cgview.fields import FieldId
    from cgview.model import SingleCgroupModel

MISSING = "-"

# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(bps: float) -> str:
    """Human-readable transfer rate."""
    if bps < 1024:
        return f"{bps:.0f} B/s"
    if bps < 1024 * 1024:
        return f"{bps / 1024:.1f} KB/s"
    if bps < 1024**3:
        return f"{bps / 1024 ** 2:.1f} MB/s"
    return f"{bps / 1024 ** 3:.1f} GB/s"


def fmt_pct(value: float) -> str:
    return f"{value:.2f}%"


def fmt_per_sec(value: float) -> str:
    return f"{value:.1f}/s"


def fmt_count(value: int | float) -> str:
    return str(int(value))


def fmt_text(value: object) -> str:
    return str(value)


def fmt_events(events: Mapping[str, int]) -> str:
    """Render perf counters as ``event=count`` pairs, ordered by name."""
    return " ".join(f"{name}={events[name]}" for name in sorted(events))


def fit(text: str, width: int | None, align: str = "<") -> str:
    """Pad or truncate *text* to exactly *width* columns."""
    if width is None:
        return text
    if len(text) > width:
        return text[:width]
    return f"{text:{align}{width}}"


def get_prefix(collapsed: bool) -> str:
    """Tree marker drawn in front of a cgroup name."""
    return "└+" if collapsed else "└-"


# ── View items ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RenderConfig:
    """Per-column presentation settings.

    ``None`` fields fall back to the field identifier's registry defaults.
    """

    title: str | None = None
    width: int | None = None
    align: str | None = None
    indented_prefix: str | None = None


@dataclass(frozen=True)
class ViewItem:
    """A field identifier bound to the config used to draw its column."""

    field_id: FieldId
    config: RenderConfig

    @classmethod
    def from_default(cls, field_id: FieldId) -> ViewItem:
        spec = field_id.spec
        return cls(
            field_id,
            RenderConfig(title=spec.title, width=spec.width, align=spec.align),
        )

    def update(self, **changes: str | int | None) -> ViewItem:
        """Return a copy with the given render settings overridden."""
        return dataclasses.replace(
            self, config=dataclasses.replace(self.config, **changes)
        )

    @property
    def align(self) -> str:
        return self.config.align or "<"

    def render_title(self) -> str:
        return fit(self.config.title or "", self.config.width, self.align)

    def render(self, model: SingleCgroupModel) -> str:
        return fit(self.field_id.render(model), self.config.width, self.align)

    def render_indented(self, model: SingleCgroupModel, depth: int) -> str:
        """Render the value behind a depth-scaled indent and the tree prefix."""
        prefix = self.config.indented_prefix or ""
        text = f"{'  ' * depth}{prefix} {self.field_id.render(model)}"
        return fit(text, self.config.width, "<")
