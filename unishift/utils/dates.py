import re
from datetime import datetime, timezone, timedelta
from typing import Optional

# Fraction de seconde de longueur quelconque (PostgREST supprime les zéros finaux)
_FRACTION = re.compile(r"\.(\d+)")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def now_iso() -> str:
    return utcnow().isoformat()

def start_of_today(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)

def days_ago_iso(days: int, now: Optional[datetime] = None) -> str:
    return ((now or utcnow()) - timedelta(days=days)).isoformat()

def parse_iso(value) -> Optional[datetime]:
    """Parse un timestamp ISO (PostgREST renvoie '...+00:00', les clients JS '...Z')."""
    if not value:
        return None
    try:
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), str(value).replace("Z", "+00:00"), count=1)
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
