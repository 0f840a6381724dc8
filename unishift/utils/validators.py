import uuid

def is_valid_id(value) -> bool:
    """Identifiants des tables Supabase: UUID (parcels, payments)."""
    if not value or not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
        return True
    except ValueError:
        return False
