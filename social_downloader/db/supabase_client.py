"""Service-role Supabase client factory."""

from supabase import create_client, Client

from social_downloader.config import Settings


def create_supabase(settings: Settings) -> Client:
    """Create a Supabase client using the service role key."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set "
            "when STORAGE_BACKEND=supabase"
        )
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )
