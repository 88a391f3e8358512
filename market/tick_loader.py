"""CSV tick loading for replays."""
import csv
from datetime import datetime, timezone
from typing import List, Optional
from loguru import logger

from market.models import Tick


def _parse_time(raw: str) -> datetime:
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
    except ValueError:
        ts_val = float(raw)
        if ts_val > 1e12: ts_val /= 1000
        return datetime.fromtimestamp(ts_val, tz=timezone.utc)


def load_csv_ticks(csv_path: str, symbol: Optional[str] = None) -> List[Tick]:
    """Load ticks (symbol,bid,ask,time columns) sorted by time."""
    ticks = []
    with open(csv_path, "r") as f:
        reader = csv.DictReader(f)
        for row in reader:
            if symbol and row["symbol"] != symbol:
                continue
            ticks.append(Tick(
                symbol=row["symbol"], bid=float(row["bid"]), ask=float(row["ask"]),
                time=_parse_time(row["time"])))
    ticks.sort(key=lambda t: t.time)
    logger.info(f"Loaded {len(ticks)} ticks from {csv_path}")
    return ticks
