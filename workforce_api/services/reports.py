from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.repositories.scheduling import ShiftRepository
from workforce_api.services.base import BaseService

LABOR_HOURS_COLUMNS = [
    "employee_position_id",
    "email",
    "full_name",
    "position",
    "shift_count",
    "scheduled_hours",
]


class ReportService(BaseService):
    """Tabular business reports built with pandas; the API layer exports them."""

    def __init__(self, session: Optional[AsyncSession], *, shifts: Optional[ShiftRepository] = None) -> None:
        super().__init__(session)
        self.shifts = shifts if shifts is not None else ShiftRepository(session)

    # PUBLIC_INTERFACE
    async def labor_hours(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> pd.DataFrame:
        """
        Scheduled labor per employee position for shifts starting in [start, end).

        Only assigned, non-cancelled shifts count; break minutes are subtracted from
        each shift's duration. Hours are rounded to two decimals.
        """
        rows = await self.shifts.labor_rows(start=start, end=end)
        data = []
        for ep_id, email, full_name, position, start_time, end_time, break_minutes in rows:
            worked = (end_time - start_time).total_seconds() / 3600.0 - (break_minutes or 0) / 60.0
            data.append(
                {
                    "employee_position_id": str(ep_id),
                    "email": email,
                    "full_name": full_name,
                    "position": position,
                    "hours": max(worked, 0.0),
                }
            )
        if not data:
            return pd.DataFrame(columns=LABOR_HOURS_COLUMNS)

        df = pd.DataFrame(data)
        report = (
            df.groupby(["employee_position_id", "email", "full_name", "position"], dropna=False, sort=False)
            .agg(shift_count=("hours", "size"), scheduled_hours=("hours", "sum"))
            .reset_index()
        )
        report["scheduled_hours"] = report["scheduled_hours"].round(2)
        return report.sort_values(["email", "position"]).reset_index(drop=True)[LABOR_HOURS_COLUMNS]
