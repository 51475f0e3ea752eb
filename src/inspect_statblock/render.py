"""Statblock rendering: pure functions from SIDS to rich Text.

Every toggleable line carries its element key as a dim suffix so a privileged
viewer can address it from the CLI. Hidden elements are struck through for
privileged viewers; unprivileged viewers only ever receive redacted SIDS.
"""

import inspect_statblock.core.sids
from rich.text import Text

ERROR_PLACEHOLDER = "Error rendering statblock. Check console."

_HIDDEN_STYLE = "dim strike"


def _line_style(hidden: bool, base: str = "") -> str:
    # [LAW:dataflow-not-control-flow] Hidden state selects a style; layout is identical.
    return _HIDDEN_STYLE if hidden else base


def _append_key(text: Text, element_key: str, show_keys: bool) -> None:
    if show_keys and element_key:
        text.append("  [{}]".format(element_key), style="dim cyan")


def render_placeholder(message: str) -> Text:
    return Text(message, style="bold red")


def render_from_sids(
    sids: inspect_statblock.core.sids.StatblockData, show_keys: bool = True
) -> Text:
    """Render one statblock.

    Args:
        sids: Snapshot produced by a system handler
        show_keys: Append element keys to toggleable lines

    Returns:
        Rich Text with one line per header, row, and defense category
    """
    text = Text()
    header = sids.header
    text.append(header.name, style=_line_style(header.hidden, "bold"))
    _append_key(text, header.element_key, show_keys)
    if header.subtitle:
        text.append("\n")
        text.append(header.subtitle, style=_line_style(header.hidden, "italic"))

    for section in sids.sections:
        text.append("\n\n")
        text.append(section.title, style=_line_style(section.hidden, "bold underline"))
        _append_key(text, section.element_key, show_keys)
        if not section.rows:
            text.append("\n  ")
            text.append("None", style="dim")
        for row in section.rows:
            text.append("\n  ")
            style = _line_style(row.hidden or section.hidden)
            text.append(row.label, style=style)
            if row.value:
                text.append(": ", style=style)
                text.append(row.value, style=style)
            _append_key(text, row.element_key, show_keys)

    if sids.defenses.items:
        text.append("\n\n")
        text.append("Defenses", style="bold underline")
    for category in sids.defenses.items:
        text.append("\n  ")
        text.append(category.label, style=_line_style(category.hidden, "bold"))
        _append_key(text, category.id, show_keys)
        if not category.tags:
            text.append(" None", style="dim")
        for tag in category.tags:
            text.append("\n    - ")
            text.append(tag.label, style=_line_style(tag.hidden or category.hidden))
            _append_key(text, tag.element_key, show_keys)
    return text
