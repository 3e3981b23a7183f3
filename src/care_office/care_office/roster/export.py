from __future__ import annotations

import io

import pandas as pd

from ..core.constants import UNASSIGNED_LABEL
from .service import RosterView
from .utils import format_time

COLUMNS = ["Date", "Staff", "House", "Start", "End", "Hours", "Type", "Status", "Notes"]


def roster_frame(view: RosterView) -> pd.DataFrame:
    rows = [
        {
            "Date": s.shift_date.isoformat(),
            "Staff": s.staff_name,
            "House": s.house_name or UNASSIGNED_LABEL,
            "Start": format_time(s.start_time),
            "End": format_time(s.end_time),
            "Hours": s.duration_hours,
            "Type": s.shift_type or "",
            "Status": s.status,
            "Notes": s.notes or "",
        }
        for s in view.shifts
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def export_roster(view: RosterView) -> bytes:
    """Shifts sheet plus an approved-leave sheet, as ``.xlsx`` bytes."""
    leave = pd.DataFrame(
        [
            {"Staff": b.staff_name, "From": b.start_date.isoformat(), "To": b.end_date.isoformat(), "Type": b.leave_type or ""}
            for b in view.leave
        ],
        columns=["Staff", "From", "To", "Type"],
    )

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        roster_frame(view).to_excel(writer, index=False, sheet_name="Roster")
        leave.to_excel(writer, index=False, sheet_name="Leave")
    return output.getvalue()
