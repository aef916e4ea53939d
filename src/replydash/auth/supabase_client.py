"""
Supabase Client for Authentication.

Provides the shared Supabase client and bearer token verification.
"""

import os
from typing import Optional, Dict, Any
from supabase import create_client, Client
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# Singleton instance
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get or create Supabase client instance (singleton pattern).

    Uses the service role key when available so server-side writes bypass
    row level security; falls back to the anon key.

    Returns:
        Supabase Client instance

    Raises:
        ValueError: If Supabase credentials are not configured
    """
    global _supabase_client

    if _supabase_client is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        if not url or not key:
            raise ValueError(
                "Supabase credentials not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables."
            )

        _supabase_client = create_client(url, key)
        logger.info("Supabase client initialized")

    return _supabase_client


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a Supabase JWT token and return user info.

    Args:
        token: JWT token from Authorization header

    Returns:
        User info dict if valid, None if invalid
    """
    try:
        client = get_supabase_client()

        # Verify token by getting user info
        response = client.auth.get_user(token)

        if response and response.user:
            return {
                "id": response.user.id,
                "email": response.user.email,
            }

        return None

    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        return None

