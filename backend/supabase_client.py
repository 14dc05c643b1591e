# supabase_client.py — Supabase client initialization and auth helpers

from supabase import AuthError, Client, create_client

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_ANON_KEY

# Global Supabase client instance
_supabase_client: Client = None


def get_supabase_client() -> Client:
    """
    Get Supabase client with anonymous key (limited permissions).
    Used for the auth endpoints, which act on behalf of the signing-in user.
    """
    global _supabase_client

    if _supabase_client is None:
        if not SUPABASE_URL or not SUPABASE_ANON_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables")

        _supabase_client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)

    return _supabase_client


def is_supabase_configured() -> bool:
    """Check if Supabase is properly configured with required environment variables."""
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY and SUPABASE_ANON_KEY)


# Authentication helpers — AuthError propagates so callers can show its message as-is
def sign_up_user(email: str, password: str, metadata: dict = None):
    """Register a new user with Supabase Auth."""
    supabase = get_supabase_client()
    return supabase.auth.sign_up({
        "email": email,
        "password": password,
        "options": {
            "data": metadata or {}
        }
    })


def sign_in_user(email: str, password: str):
    """Sign in a user with Supabase Auth."""
    supabase = get_supabase_client()
    return supabase.auth.sign_in_with_password({
        "email": email,
        "password": password
    })


__all__ = ["AuthError", "get_supabase_client", "is_supabase_configured", "sign_in_user", "sign_up_user"]
