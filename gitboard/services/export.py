from collections.abc import Sequence
from datetime import date
from html import escape

from gitboard.services.calendar import Band
from gitboard.services.calendar import YearContributions
from gitboard.services.calendar import contribution_band

CELL_SIZE = 10
CELL_PADDING = 2
CELL_STEP = CELL_SIZE + CELL_PADDING
YEAR_PADDING = 30
LABEL_HEIGHT = 30
YEAR_HEIGHT = 7 * CELL_STEP
WEEKS_IN_YEAR = 53

BACKGROUND_COLOR = "#0f172a"
LABEL_COLOR = "#e2e8f0"
BAND_COLORS = {
    Band.ZERO: "#1e293b",
    Band.LOW: "#064e3b",
    Band.MID_LOW: "#047857",
    Band.MID_HIGH: "#10b981",
    Band.HIGH: "#34d399",
}


def week_column(day: date) -> int:
    """Sunday-first week column of a day within its year."""

    jan_first = date(day.year, 1, 1)
    offset = (jan_first.weekday() + 1) % 7
    return (day.timetuple().tm_yday - 1 + offset) // 7


def weekday_row(day: date) -> int:
    return (day.weekday() + 1) % 7


def render_contributions_svg(years: Sequence[YearContributions]) -> str:
    """Render normalized yearly contributions as a standalone SVG document.

    Years are stacked top to bottom in the given order. The output depends
    only on the input, so identical data renders to identical bytes.
    """

    columns = WEEKS_IN_YEAR
    for year_data in years:
        if year_data.days:
            columns = max(columns, week_column(year_data.days[-1].date) + 1)

    width = columns * CELL_STEP
    height = len(years) * (YEAR_HEIGHT + YEAR_PADDING)

    parts = [
        f'<svg width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}" xmlns="http://www.w3.org/2000/svg">',
        "<style>"
        f".year-label {{ font: bold 12px sans-serif; fill: {LABEL_COLOR}; }}"
        "</style>",
        f'<rect width="100%" height="100%" fill="{BACKGROUND_COLOR}"/>',
    ]

    for year_index, year_data in enumerate(years):
        y_offset = year_index * (YEAR_HEIGHT + YEAR_PADDING)
        max_count = year_data.max_count
        parts.append(
            f'<text x="0" y="{y_offset + 20}" class="year-label">'
            f"{escape(str(year_data.year))}</text>"
        )

        for day in year_data.days:
            x = week_column(day.date) * CELL_STEP
            y = y_offset + LABEL_HEIGHT + weekday_row(day.date) * CELL_STEP
            fill = BAND_COLORS[contribution_band(day.count, max_count)]
            parts.append(
                f'<rect x="{x}" y="{y}" width="{CELL_SIZE}" height="{CELL_SIZE}" '
                f'rx="2" ry="2" fill="{fill}"><title>{day.date.isoformat()}: '
                f"{day.count} contributions</title></rect>"
            )

    parts.append("</svg>")
    return "\n".join(parts) + "\n"
