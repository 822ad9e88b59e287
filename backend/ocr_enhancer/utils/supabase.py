from supabase import create_client, Client
from ocr_enhancer.config import settings
from ocr_enhancer.exceptions import LicenseError


def get_supabase_client() -> Client:
    """
    Create a Supabase client for the license table.

    The table is admin-only, so the service role key is used rather than
    the anon key.

    Raises:
        LicenseError: If the URL or service key is not configured
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise LicenseError("Supabase is not configured (SUPABASE_URL / SUPABASE_SERVICE_KEY)")

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
    except Exception as e:
        raise LicenseError(f"Failed to create Supabase client: {str(e)}") from e
