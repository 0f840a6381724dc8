from typing import Any, Dict, List, Optional
from postgrest.exceptions import APIError

UNIQUE_VIOLATION = "23505"

def error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return str(code) if code else None

def is_unique_violation(e: Exception) -> bool:
    return isinstance(e, APIError) and error_code(e) == UNIQUE_VIOLATION

def rows(res) -> List[Dict[str, Any]]:
    """Normalise res.data (liste, dict ou None) en liste de lignes."""
    data = getattr(res, "data", None)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    return []

def first_row(res) -> Optional[Dict[str, Any]]:
    data = rows(res)
    return data[0] if data else None
